# =============================================================================
# voxpipe/cli/ingest.py: knowledge store management
# =============================================================================
#
# Operates on the same Chroma collection and SQLite database as the API, so
# documents ingested here are immediately searchable by the organization's
# agents.
#
#   file     ingest one local file for an organization
#   search   run a similarity search as a given agent
#   list     list an organization's documents
#   content  print a document's reassembled text
#   delete   delete a document (chunks and record)
#   stats    chunk and document counts for an organization
# =============================================================================

"""Standalone CLI for the voxpipe knowledge store.

Usage::

    python -m voxpipe.cli.ingest file --file handbook.pdf \\
        --organization-id org_1 --agent-ids agent_a,agent_b

    python -m voxpipe.cli.ingest search --organization-id org_1 \\
        --agent-id agent_a "What are the opening hours?"

    python -m voxpipe.cli.ingest stats --organization-id org_1
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

from voxpipe.config.loader import load_config
from voxpipe.config.settings import Settings


def _split_agent_ids(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


async def _with_components(
    action: Callable[[dict[str, Any]], Awaitable[int]],
) -> int:
    """Build, open and close the shared components around *action*."""
    from voxpipe.bootstrap import build_components, start_components, stop_components
    from voxpipe.utils.logging import configure_logging

    settings = Settings()
    configure_logging(log_level=settings.log_level)
    config = load_config(settings=settings)
    components = build_components(settings, config)
    components["config"] = config
    await start_components(components)
    try:
        return await action(components)
    finally:
        await stop_components(components)


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_file(args: argparse.Namespace) -> int:
    from voxpipe.services.ingestion.knowledge_service import KnowledgeService
    from voxpipe.utils.errors import VoxpipeError

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1
    if not KnowledgeService.is_supported(path.name):
        supported = ", ".join(KnowledgeService.supported_file_types())
        print(f"Error: unsupported file type. Supported: {supported}", file=sys.stderr)
        return 1

    async def _run(components: dict[str, Any]) -> int:
        knowledge: KnowledgeService = components["knowledge_service"]
        try:
            result = await knowledge.ingest(
                data=path.read_bytes(),
                filename=path.name,
                organization_id=args.organization_id,
                agent_ids=_split_agent_ids(args.agent_ids),
                document_id=args.document_id,
            )
        except VoxpipeError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        print(f"Ingested '{result.name}' as {result.document_id}")
        print(f"  File type: {result.file_type}")
        print(f"  Chunks:    {result.chunks_created}")
        print(f"  Time:      {result.ingestion_time:.2f}s")
        return 0

    return await _with_components(_run)


async def _handle_search(args: argparse.Namespace) -> int:
    async def _run(components: dict[str, Any]) -> int:
        limit = args.limit or components["config"]["search"]["default_limit"]
        hits = await components["knowledge_service"].search(
            args.query, args.agent_id, args.organization_id, limit
        )
        if not hits:
            print("No results.")
            return 0
        for rank, hit in enumerate(hits, start=1):
            print(
                f"{rank}. {hit.document_name} "
                f"[chunk {hit.chunk_index + 1}/{hit.total_chunks}] "
                f"distance={hit.distance:.4f}"
            )
            print(f"   {hit.content[:200]}")
        return 0

    return await _with_components(_run)


async def _handle_list(args: argparse.Namespace) -> int:
    async def _run(components: dict[str, Any]) -> int:
        documents = await components["knowledge_service"].list_documents(args.organization_id)
        if not documents:
            print("No documents.")
            return 0
        for doc in documents:
            agents = ",".join(doc.agent_ids) or "-"
            print(f"{doc.document_id}  {doc.name}  chunks={doc.chunk_count}  agents={agents}")
        print(f"\n{len(documents)} document(s)")
        return 0

    return await _with_components(_run)


async def _handle_content(args: argparse.Namespace) -> int:
    async def _run(components: dict[str, Any]) -> int:
        content = await components["knowledge_service"].get_document_content(
            args.document_id, args.organization_id
        )
        if not content:
            print(f"Error: document {args.document_id} not found", file=sys.stderr)
            return 1
        print(content)
        return 0

    return await _with_components(_run)


async def _handle_delete(args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input(f"Delete document {args.document_id}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 1

    async def _run(components: dict[str, Any]) -> int:
        deleted = await components["knowledge_service"].delete_document(
            args.document_id, args.organization_id
        )
        if not deleted:
            print(f"Error: document {args.document_id} not found", file=sys.stderr)
            return 1
        print(f"Deleted {args.document_id}")
        return 0

    return await _with_components(_run)


async def _handle_stats(args: argparse.Namespace) -> int:
    async def _run(components: dict[str, Any]) -> int:
        stats = await components["knowledge_service"].get_stats(args.organization_id)
        print(f"Documents: {stats.total_documents}")
        print(f"Chunks:    {stats.total_chunks}")
        for name, count in sorted(stats.chunks_by_document.items()):
            print(f"  {name}: {count}")
        return 0

    return await _with_components(_run)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voxpipe-ingest",
        description="Manage the voxpipe knowledge store.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    file_parser = subparsers.add_parser("file", help="Ingest a local file")
    file_parser.add_argument("--file", required=True, help="Path to the file")
    file_parser.add_argument("--organization-id", required=True)
    file_parser.add_argument("--agent-ids", default="", help="Comma-separated agent ids")
    file_parser.add_argument(
        "--document-id",
        default=None,
        help="Reuse an existing document id to complete a partial ingestion",
    )

    search_parser = subparsers.add_parser("search", help="Search as an agent")
    search_parser.add_argument("query")
    search_parser.add_argument("--organization-id", required=True)
    search_parser.add_argument("--agent-id", required=True)
    search_parser.add_argument("--limit", type=int, default=None, help="Defaults to search.default_limit")

    list_parser = subparsers.add_parser("list", help="List documents")
    list_parser.add_argument("--organization-id", required=True)

    content_parser = subparsers.add_parser("content", help="Print a document's text")
    content_parser.add_argument("document_id")
    content_parser.add_argument("--organization-id", required=True)

    delete_parser = subparsers.add_parser("delete", help="Delete a document")
    delete_parser.add_argument("document_id")
    delete_parser.add_argument("--organization-id", required=True)
    delete_parser.add_argument("--yes", action="store_true", help="Skip confirmation")

    stats_parser = subparsers.add_parser("stats", help="Show store statistics")
    stats_parser.add_argument("--organization-id", required=True)

    return parser


_HANDLERS: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
    "file": _handle_file,
    "search": _handle_search,
    "list": _handle_list,
    "content": _handle_content,
    "delete": _handle_delete,
    "stats": _handle_stats,
}


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    sys.exit(asyncio.run(_HANDLERS[args.command](args)))


if __name__ == "__main__":
    main()
