"""CLI entrypoints for storyindex commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .errors import AggregateIndexingError
from .generator import StoryIndexGenerator
from .logging import configure_logging


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Directory holding .storyindex.yml, or the file itself (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storyindex",
        description="Index stories and docs entries across a project.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Build the index once and print it as JSON.",
    )
    _add_verbose_option(extract_parser, suppress_default=True)
    _add_path_argument(extract_parser)
    extract_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write the index to this file instead of stdout.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve /index.json and accept invalidation notifications over HTTP.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_path_argument(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=6006, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for storyindex commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "extract":
        try:
            config = load_config(Path(args.path))
            generator = StoryIndexGenerator.from_config(config)
            index = asyncio.run(generator.get_index())
        except ConfigError as exc:
            parser.exit(1, f"Invalid configuration: {exc}\n")
        except AggregateIndexingError as exc:
            parser.exit(1, f"{exc}\n")
        payload = json.dumps(index.to_dict(), indent=2)
        if args.output is not None:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(payload + "\n", encoding="utf-8")
            print(f"Wrote {len(index.entries)} entries to {args.output}")
        else:
            print(payload)
    elif args.command == "serve":
        from .service import run_service

        try:
            run_service(args.path, host=args.host, port=args.port)
        except ConfigError as exc:
            parser.exit(1, f"Invalid configuration: {exc}\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


if __name__ == "__main__":
    main(sys.argv[1:])
