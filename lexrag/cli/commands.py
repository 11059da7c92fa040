"""Command-line interface for indexing and querying the corpus.

Usage::

    python -m lexrag.cli ingest data/markdown/憲法/321AC0000000001_19470503_000000000000000.md
    python -m lexrag.cli reindex data/markdown/民法/*.md
    python -m lexrag.cli ask "日本国憲法の三大原則は何ですか" --category 憲法
    python -m lexrag.cli search "表現の自由" --limit 5 --threshold 0.4
    python -m lexrag.cli health
    python -m lexrag.cli stats

Every command builds the application once (provider selection included),
runs, and disposes it.  Results go to stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Awaitable, Callable

import structlog

from lexrag.config.settings import Settings
from lexrag.main import Application, build_application, setup_logging
from lexrag.models.conversation import QueryRequest
from lexrag.models.document import MetadataFilter, SearchOptions
from lexrag.models.indexing import IndexingResult
from lexrag.utils.errors import LexRAGError

logger = structlog.get_logger(logger_name=__name__)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _print_indexing_result(title: str, result: IndexingResult) -> None:
    print(title)
    print(f"  Documents processed: {result.documents_processed}")
    print(f"  Documents failed:    {result.documents_failed}")
    print(f"  Chunks created:      {result.chunks_created}")
    print(f"  Chunks stored:       {result.chunks_stored}")
    if result.chunks_deleted:
        print(f"  Chunks replaced:     {result.chunks_deleted}")
    print(f"  Total embeddings:    {result.total_embeddings}")
    print(f"  Time:                {result.elapsed_seconds:.2f}s")
    for path in result.failed_paths:
        print(f"  FAILED: {path}")


async def _handle_ingest(args: argparse.Namespace, app: Application) -> int:
    result = await app.indexer.index_documents(args.files)
    _print_indexing_result("Indexing complete:", result)
    return 0 if result.documents_failed == 0 else 1


async def _handle_reindex(args: argparse.Namespace, app: Application) -> int:
    result = await app.indexer.reindex_documents(args.files)
    _print_indexing_result("Reindex complete:", result)
    return 0 if result.documents_failed == 0 else 1


async def _handle_ask(args: argparse.Namespace, app: Application) -> int:
    filters = MetadataFilter(category=args.category, identifier=args.identifier, era=args.era)
    response = await app.query_service.process_query(
        QueryRequest(
            query=args.query,
            conversation_id=args.conversation_id,
            language=args.language,
            filters=filters if filters.as_dict() else None,
        )
    )
    print(response.answer)
    if response.sources:
        print("\nSources:")
        for index, source in enumerate(response.sources, start=1):
            print(f"  [{index}] {source.title} ({source.score:.2f}) {source.document_path}")
    if response.related_questions:
        print("\nRelated questions:")
        for question in response.related_questions:
            print(f"  - {question}")
    print(f"\nConversation: {response.conversation_id}")
    return 0


async def _handle_search(args: argparse.Namespace, app: Application) -> int:
    results = await app.query_service.search_documents(
        args.query, SearchOptions(limit=args.limit, threshold=args.threshold)
    )
    if not results:
        print("No matching chunks.")
        return 0
    for result in results:
        chunk = result.chunk
        print(f"{result.score:.3f}  {chunk.title}  [{chunk.metadata.category}]  #{chunk.chunk_index}")
        for highlight in result.highlights:
            print(f"        {highlight}")
    return 0


async def _handle_health(args: argparse.Namespace, app: Application) -> int:
    statuses = await app.orchestrator.perform_health_checks()
    print("Provider health")
    print("=" * 40)
    for provider, status in statuses.items():
        latency = f"{status.latency_ms:.0f}ms" if status.latency_ms is not None else "-"
        print(
            f"  {provider.value:<10} {status.state.value:<10} latency={latency:<8} "
            f"errors={status.error_count} rate={status.error_rate:.1f}%"
        )
        if status.last_error:
            print(f"             last error: {status.last_error}")
    return 0 if any(s.healthy for s in statuses.values()) else 1


async def _handle_stats(args: argparse.Namespace, app: Application) -> int:
    stats = await app.indexer.get_stats()
    costs = app.orchestrator.get_cost_summary()
    print("Corpus statistics")
    print("=" * 40)
    print(f"  Total embeddings:   {stats.total_embeddings}")
    print(f"  Embedding provider: {app.embedding_service.get_provider_name()}")
    print(f"  LLM provider:       {app.llm_service.get_provider_name()}")
    print(f"  Estimated cost:     ${costs.total:.6f}")
    return 0


_HANDLERS: dict[str, Callable[[argparse.Namespace, Application], Awaitable[int]]] = {
    "ingest": _handle_ingest,
    "reindex": _handle_reindex,
    "ask": _handle_ask,
    "search": _handle_search,
    "health": _handle_health,
    "stats": _handle_stats,
}


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m lexrag.cli",
        description="Index and query the lexrag legal-document corpus.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ingest_parser = subparsers.add_parser("ingest", help="Index markdown documents")
    ingest_parser.add_argument("files", nargs="+", help="Markdown files to index")

    reindex_parser = subparsers.add_parser(
        "reindex", help="Replace the stored chunks of documents"
    )
    reindex_parser.add_argument("files", nargs="+", help="Markdown files to re-index")

    ask_parser = subparsers.add_parser("ask", help="Ask a question with cited sources")
    ask_parser.add_argument("query", help="Question text")
    ask_parser.add_argument("--conversation-id", dest="conversation_id", default=None)
    ask_parser.add_argument("--language", choices=["ja", "en"], default="ja")
    ask_parser.add_argument("--category", default=None, help="Only this category")
    ask_parser.add_argument("--identifier", default=None, help="Only this law number")
    ask_parser.add_argument("--era", default=None, help="Only this era, e.g. 昭和")

    search_parser = subparsers.add_parser("search", help="Similarity search only")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("--limit", type=int, default=10)
    search_parser.add_argument("--threshold", type=float, default=0.0)

    subparsers.add_parser("health", help="Probe every configured provider")
    subparsers.add_parser("stats", help="Show corpus statistics")

    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    # one-shot commands have no use for the background health task
    app = await build_application(settings=settings, start_monitoring=False)
    async with app:
        return await _HANDLERS[args.command](args, app)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    settings = Settings()
    setup_logging(settings)

    try:
        return asyncio.run(_run(args, settings))
    except LexRAGError as exc:
        logger.error("command_failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 2
