"""CLI entrypoints for repodoc commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List

from .config import ConfigError, load_config
from .errors import RepoDocError
from .logging import configure_logging
from .orchestrator import Orchestrator
from .postproc import strip_reasoning


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_repository_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="Repository URL to clone (https or scp-style).")
    parser.add_argument(
        "--token",
        default=None,
        help="Access token for private repositories.",
    )
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Extra HTTP header sent with the clone (repeatable).",
    )
    parser.add_argument(
        "--max-files",
        type=int,
        default=None,
        help="Maximum number of files to extract (defaults to the configured cap).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repodoc",
        description="Extract repository structure and generate per-file documentation.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .repodoc.yml or the directory holding it.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Clone a repository and print its structure and extracted files.",
    )
    _add_verbose_option(extract_parser, suppress_default=True)
    _add_repository_options(extract_parser)
    extract_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full extraction payload as JSON.",
    )

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate markdown documentation for the extracted files.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_repository_options(generate_parser)
    generate_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the documentation to this file instead of stdout.",
    )

    readme_parser = subparsers.add_parser(
        "readme",
        help="Generate a README for the whole repository.",
    )
    _add_verbose_option(readme_parser, suppress_default=True)
    _add_repository_options(readme_parser)
    readme_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the README to this file instead of streaming it to stdout.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def _parse_headers(parser: argparse.ArgumentParser, raw_headers: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            parser.error(f"Invalid header {raw!r}; expected NAME:VALUE")
        headers[name.strip()] = value.strip()
    return headers


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repodoc commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port, config=config)
        return

    headers = _parse_headers(parser, args.header)
    if args.max_files is not None and args.max_files < 0:
        parser.error("--max-files must be zero or positive")
    orchestrator = Orchestrator(config)

    if args.command == "extract":
        try:
            result = orchestrator.extract(
                args.url, token=args.token, headers=headers, max_files=args.max_files
            )
        except RepoDocError as exc:
            parser.exit(1, f"repodoc extract failed: {exc}\nRun with --verbose for more details.\n")
        if args.json:
            payload = dict(result.as_payload())
            payload["commit"] = result.commit
            payload["skipped"] = result.skipped
            print(json.dumps(payload, indent=2, ensure_ascii=False))
        else:
            sys.stdout.write(result.structure)
            print(f"\nExtracted {len(result.file_contents)} files at {result.commit}")
            for path in result.file_contents:
                print(f"  {path}")
    elif args.command == "generate":
        try:
            documentation = orchestrator.document(
                args.url, token=args.token, headers=headers, max_files=args.max_files
            )
        except RepoDocError as exc:
            parser.exit(1, f"repodoc generate failed: {exc}\nRun with --verbose for more details.\n")
        if args.output is not None:
            args.output.write_text(documentation, encoding="utf-8")
            print(f"Documentation written to {_relativize(args.output)}")
        else:
            sys.stdout.write(documentation)
    elif args.command == "readme":
        try:
            stream = orchestrator.readme(
                args.url, token=args.token, headers=headers, max_files=args.max_files
            )
            if args.output is not None:
                readme = strip_reasoning(stream.text()).strip() + "\n"
                args.output.write_text(readme, encoding="utf-8")
            else:
                for fragment in stream:
                    sys.stdout.write(fragment)
                    sys.stdout.flush()
        except RepoDocError as exc:
            parser.exit(1, f"repodoc readme failed: {exc}\nRun with --verbose for more details.\n")
        if args.output is not None:
            print(f"README written to {_relativize(args.output)}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
