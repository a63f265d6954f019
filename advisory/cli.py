"""Command-line interface.

Usage:
    advisory add books/*.epub
    advisory add --model mxbai-embed-large --collection science origin.epub
    advisory query -n 5 --exact author="Charles Darwin" "What limits growth?"
"""

import argparse
import asyncio
import glob
import re
import sys
from collections.abc import Sequence

import structlog
from pydantic import ValidationError
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.prompt import Prompt

from advisory import __version__
from advisory.config import Settings, get_settings
from advisory.infrastructure.embeddings import EmbeddingError, OllamaEmbedder
from advisory.infrastructure.observability import (
    configure_logging,
    init_observability,
    shutdown_observability,
)
from advisory.infrastructure.vectordb import (
    ChromaVectorStore,
    Query,
    Result,
    VectorStore,
    VectorStoreError,
    collection_name_for,
    new_query,
)
from advisory.modules.ingest import BookLoadError, ChunkingConfig, parse_epub

logger = structlog.get_logger()

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

RESULT_SEPARATOR = "\n--------\n"


def _key_value(arg: str) -> tuple[str, str]:
    key, sep, value = arg.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {arg!r}")
    return key, value


def _key_pattern(arg: str) -> tuple[str, str]:
    key, pattern = _key_value(arg)
    try:
        re.compile(pattern)
    except re.error as e:
        raise argparse.ArgumentTypeError(f"invalid pattern {pattern!r}: {e}") from e
    return key, pattern


def _positive_int(arg: str) -> int:
    try:
        value = int(arg)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected an integer, got {arg!r}") from e
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """Build the argument parser, using settings for option defaults."""
    parser = argparse.ArgumentParser(
        prog="advisory",
        description="Semantic search over e-book content.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.debug,
        help="Log debug output to stderr",
    )

    store_options = argparse.ArgumentParser(add_help=False)
    store_options.add_argument(
        "--model",
        default=settings.embedding_model,
        help="embedding model to use (default: %(default)s)",
    )
    store_options.add_argument(
        "--collection",
        default=settings.collection_name,
        help="collection of vectorstore (default: %(default)s)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser(
        "add",
        parents=[store_options],
        help="add epub file content to vectorstore",
    )
    add.add_argument(
        "patterns", nargs="+", metavar="PATTERN", help="epub files or globs"
    )

    query = subparsers.add_parser(
        "query",
        parents=[store_options],
        help="query vectorstore",
    )
    query.add_argument(
        "text", nargs="?", help="question to search for (prompted if omitted)"
    )
    query.add_argument(
        "-n",
        dest="number",
        type=_positive_int,
        default=settings.query_results,
        help="number of results (default: %(default)s)",
    )
    query.add_argument(
        "--exact",
        type=_key_value,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="only keep results whose metadata KEY equals VALUE",
    )
    query.add_argument(
        "--regex",
        type=_key_pattern,
        action="append",
        default=[],
        metavar="KEY=PATTERN",
        help="only keep results whose metadata KEY matches PATTERN"
        " (ignored when --exact is given)",
    )

    return parser


def open_store(settings: Settings, model: str, collection: str) -> VectorStore:
    """Open the persistent store for an (embedding model, collection) pair."""
    embedder = OllamaEmbedder(
        model,
        host=settings.ollama_host,
        timeout_seconds=settings.embedding_timeout_seconds,
    )
    return ChromaVectorStore(
        settings.store_path,
        collection_name_for(model, collection),
        embedder,
        concurrency=settings.concurrency,
    )


def build_query(args: argparse.Namespace) -> Query:
    """Translate parsed ``query`` arguments into a :class:`Query`."""
    query = new_query(args.text or "").with_number(args.number)
    if args.exact:
        query.with_exact(*(part for pair in args.exact for part in pair))
    if args.regex:
        query.with_regex(*(part for pair in args.regex for part in pair))
    return query


def render_results(results: Sequence[Result]) -> str:
    """Format results as one markdown document, best match first."""
    return RESULT_SEPARATOR.join(
        "> {title} by {author}\n\n{content}".format(
            title=r.metadata.get("title", ""),
            author=r.metadata.get("author", ""),
            content=r.content,
        )
        for r in results
    )


async def add_books(
    store: VectorStore,
    patterns: Sequence[str],
    config: ChunkingConfig,
) -> int:
    """Parse every EPUB matching the patterns and add it to the store.

    Returns:
        Number of documents added.

    Raises:
        BookLoadError: If a matched file cannot be parsed.
        EmbeddingError: If embedding fails.
        VectorStoreError: If storing fails.
    """
    added = 0
    for pattern in patterns:
        matches = sorted(glob.glob(pattern))
        logger.info("files_found", pattern=pattern, count=len(matches))
        for path in matches:
            documents = await asyncio.to_thread(parse_epub, path, config)
            logger.info("chunks_importing", file_path=path, count=len(documents))
            await store.add(*documents)
            added += len(documents)
    return added


def main(argv: Sequence[str] | None = None, settings: Settings | None = None) -> int:
    """Run the CLI and return the process exit code."""
    if settings is None:
        try:
            settings = get_settings()
        except ValidationError as e:
            Console(stderr=True).print(
                f"[red]Invalid configuration:[/] {escape(str(e))}", highlight=False
            )
            return EXIT_FAILURE
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    configure_logging(debug=args.debug)
    init_observability(
        settings.app_name,
        __version__,
        otlp_endpoint=settings.otel_endpoint,
        console_export=settings.otel_console_export,
        enabled=settings.otel_enabled,
        sample_rate=settings.otel_sample_rate,
    )

    console = Console()
    status_console = Console(stderr=True)

    try:
        store = open_store(settings, args.model, args.collection)

        if args.command == "add":
            config = ChunkingConfig(
                max_size=settings.chunk_size,
                overlap=settings.chunk_overlap,
            )
            with status_console.status("Adding books..."):
                added = asyncio.run(add_books(store, args.patterns, config))
            logger.info("books_added", documents=added)
            return EXIT_SUCCESS

        if args.text is None:
            args.text = Prompt.ask("query", console=status_console)
        query = build_query(args)
        with status_console.status("Searching..."):
            results = asyncio.run(store.search(query))

        if not results:
            status_console.print("No matching passages.")
            return EXIT_SUCCESS
        console.print(Markdown(render_results(results)))
        return EXIT_SUCCESS

    except (BookLoadError, EmbeddingError, VectorStoreError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        status_console.print(f"[red]Error:[/] {escape(str(e))}", highlight=False)
        return EXIT_FAILURE

    except KeyboardInterrupt:
        status_console.print("Aborted.")
        return EXIT_INTERRUPTED

    finally:
        shutdown_observability()


if __name__ == "__main__":
    sys.exit(main())
