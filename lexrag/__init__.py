"""lexrag: cited question answering over a Japanese legal-document corpus."""

__version__ = "0.1.0"
