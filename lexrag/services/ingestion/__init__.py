"""Document ingestion: parse markdown, derive metadata, chunk, and index."""

from lexrag.services.ingestion.chunker import DocumentChunker
from lexrag.services.ingestion.document_parser import DocumentParser
from lexrag.services.ingestion.indexer import DocumentIndexer
from lexrag.services.ingestion.metadata_extractor import MetadataExtractor

__all__ = ["DocumentChunker", "DocumentIndexer", "DocumentParser", "MetadataExtractor"]
