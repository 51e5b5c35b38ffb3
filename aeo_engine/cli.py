# aeo_engine/cli.py
# Defines the command-line interface using argparse.

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import IO, Any, Sequence

from aeo_engine.__about__ import __version__
from aeo_engine.api import build_registry, evaluate_page
from aeo_engine.cache import CacheConfig, FileCache
from aeo_engine.config import load_config
from aeo_engine.models import ApplicationLevel, PageContent, PageType
from aeo_engine.ui import (
    render_categories_section,
    render_evaluate_header,
    render_issues_section,
    render_results_section,
    render_rules_table,
    render_score_line,
    render_unavailable_section,
)

log = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _read_text(path: str | None) -> str:
    if not path:
        return ""
    p = Path(path)
    if not p.exists():
        log.error("The file specified could not be found: %s", path)
        raise FileNotFoundError(path)
    return p.read_text(encoding="utf-8")


def _json_default(o: Any) -> Any:
    if isinstance(o, datetime):
        return o.isoformat()
    if isinstance(o, Enum):
        return o.value
    if is_dataclass(o):
        return asdict(o)  # type: ignore[arg-type]
    return str(o)


def _human_bytes(n: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    v = float(n)
    while v >= 1024 and i < len(units) - 1:
        v /= 1024.0
        i += 1
    s = f"{v:.2f}".rstrip("0").rstrip(".")
    return f"{s} {units[i]}"


def _init_file_cache(config: dict[str, Any], cache_dir: str | None, os_default: bool) -> FileCache:
    cfg = CacheConfig.from_mapping(config.get("cache"))
    cfg.enabled = True
    if os_default:
        cfg.directory = "os-default"
    if cache_dir:
        cfg.directory = cache_dir
    return FileCache(cfg)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Score a web page for answer-engine optimization.",
        prog="aeo_engine",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output to stderr.",
    )
    parser.add_argument(
        "--config",
        metavar="PYPROJECT",
        default=None,
        help="pyproject.toml to read [tool.aeo_engine] from (default: ./pyproject.toml).",
    )
    page_types = [p.value for p in PageType]

    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- evaluate ---
    evaluate_parser = subparsers.add_parser(
        "evaluate", help="Run the rule battery against a saved page and print the report."
    )
    evaluate_parser.add_argument("url", help="The URL the page was fetched from.")
    evaluate_parser.add_argument(
        "--html-file", metavar="FILEPATH", required=True, help="Raw HTML of the page."
    )
    evaluate_parser.add_argument(
        "--text-file", metavar="FILEPATH", help="Extracted visible text (default: derived from HTML)."
    )
    evaluate_parser.add_argument("--page-type", choices=page_types, default=None)
    evaluate_parser.add_argument(
        "--page-only",
        action="store_true",
        help="Skip domain-level rules (no Wikipedia/Wikidata lookups).",
    )
    evaluate_parser.add_argument(
        "--json",
        dest="json_output",
        metavar="FILEPATH",
        help="Also write the full report as JSON.",
    )

    # --- rules ---
    rules_parser = subparsers.add_parser("rules", help="List registered rules.")
    rules_parser.add_argument("--page-type", choices=page_types, default=None)

    # --- cache ---
    cache_parser = subparsers.add_parser("cache", help="Manage the on-disk lookup cache.")
    cache_parser.add_argument(
        "--dir",
        dest="cache_dir",
        metavar="PATH",
        default=None,
        help="Cache directory to operate on (defaults to configured directory).",
    )
    cache_parser.add_argument(
        "--os-default",
        dest="cache_os_default",
        action="store_true",
        help="Use the OS-specific default cache directory.",
    )
    cache_sub = cache_parser.add_subparsers(dest="cache_cmd", required=True)
    cache_sub.add_parser("clear", help="Wipe the entire cache directory.")
    cache_sub.add_parser("stats", help="Show total items and size on disk.")
    cache_inspect = cache_sub.add_parser("inspect", help="Dump the cached record for a key.")
    cache_inspect.add_argument("key", help="The exact cache key (URL with sorted query).")
    return parser


def _run_cache_command(args: argparse.Namespace, config: dict[str, Any], stdout: IO[str]) -> int:
    fc = _init_file_cache(config, args.cache_dir, args.cache_os_default)
    try:
        if args.cache_cmd == "clear":
            fc.clear_all()
            print(f"Cache cleared at: {fc.directory or '(disabled)'}", file=stdout)
            return 0

        if args.cache_cmd == "stats":
            st = fc.stats()
            bytes_on_disk = int(st.get("bytes", 0))
            out = {
                "directory": st.get("directory", ""),
                "items": int(st.get("items", 0)),
                "bytes": bytes_on_disk,
                "human_bytes": _human_bytes(bytes_on_disk),
            }
            print(json.dumps(out, indent=2), file=stdout)
            return 0

        data = fc.get(args.key)
        if data is None:
            print("Cache miss", file=stdout)
            return 2
        print(json.dumps(data, indent=2, default=_json_default), file=stdout)
        return 0
    finally:
        fc.close()


async def async_main(argv: Sequence[str] | None = None, stdout: IO[str] | None = None) -> int:
    """Async entry point for the command-line interface."""
    stdout = stdout or sys.stdout
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    config = load_config(Path(args.config) if args.config else None)

    if args.command == "cache":
        return _run_cache_command(args, config, stdout)

    if args.command == "rules":
        registry = build_registry(config)
        render_rules_table(registry.all_rules(), args.page_type, file=stdout)
        print(f"\n{json.dumps(registry.summary())}", file=stdout)
        return 0

    # args.command == "evaluate"
    try:
        html = _read_text(args.html_file)
        text = _read_text(args.text_file)
    except FileNotFoundError:
        return 1

    content = PageContent(url=args.url, html=html, clean_content=text, page_type=args.page_type)
    render_evaluate_header(args.url, file=stdout)
    report = await evaluate_page(
        content,
        config=config,
        level=ApplicationLevel.PAGE if args.page_only else None,
    )
    render_score_line(report, file=stdout)
    render_categories_section(report, file=stdout)
    render_results_section(report, file=stdout)
    render_issues_section(report, file=stdout)
    render_unavailable_section(report.unavailable_rules, file=stdout)

    if args.json_output:
        out_path = Path(args.json_output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8") as f:
            json.dump(report, f, default=_json_default, indent=2)
        print(f"\nFull report written to {args.json_output}", file=stdout)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Synchronous wrapper for the CLI entry point."""
    return asyncio.run(async_main(argv))


if __name__ == "__main__":
    sys.exit(main())
