"""CLI entrypoints for repograph commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError
from .graph_loader import GraphSnapshotError
from .logging import configure_logging
from .orchestrator import Orchestrator


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


def _add_log_file_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-file",
        dest="log_file",
        help="Also write detailed logs to this file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repograph",
        description="Analyse a package's module graph for dependency and architecture issues.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyse a repository and write JSON/Markdown reports.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    _add_log_file_option(analyze_parser)
    analyze_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the package root containing package.json (defaults to current directory).",
    )
    analyze_parser.add_argument(
        "--graph",
        help="Module graph snapshot (defaults to <path>/.repograph/graph.json).",
    )
    analyze_parser.add_argument(
        "--output",
        help="Directory for report files (defaults to <path>/.repograph/report).",
    )
    analyze_parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        choices=("json", "markdown"),
        help="Report format to write; repeat for several. Defaults to all.",
    )
    analyze_parser.add_argument(
        "--entry",
        dest="entries",
        action="append",
        default=[],
        help="Additional entry file treated as public for unused/orphan checks.",
    )
    analyze_parser.add_argument(
        "--most-imported",
        type=int,
        dest="most_imported",
        help="Number of most-imported files to report.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP analysis service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_log_file_option(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repograph commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file).expanduser() if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    if args.command == "analyze":
        orchestrator = Orchestrator()
        try:
            outcome = orchestrator.run_analysis(
                args.path,
                graph_path=args.graph,
                output_dir=args.output,
                formats=args.formats,
                entry_paths=list(args.entries),
                most_imported_limit=args.most_imported,
            )
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        except (GraphSnapshotError, ConfigError) as exc:
            parser.exit(1, f"repograph analyze failed: {exc}\n")
        except ValueError as exc:
            parser.exit(1, f"repograph analyze failed: {exc}\nRun with --verbose for more details.\n")
        for path in outcome.report_paths:
            print(f"Wrote {_relativize(path)}")
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
