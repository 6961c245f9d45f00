"""Terminal client that reuses the in-process search engine."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Iterable

from catalog_search.config import settings
from catalog_search.engine import SearchEngine, build_engine
from catalog_search.errors import SearchError
from catalog_search.models import SearchQuery, SearchResult

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def perform_query(engine: SearchEngine, term: str, args: argparse.Namespace) -> SearchResult:
    query = SearchQuery.parse(
        term=term,
        category_id=args.category,
        sort_mode=args.sort,
        page=args.page,
        page_size=args.limit,
        in_stock_only=args.in_stock,
    )
    return asyncio.run(engine.search(query))


def pretty_print_response(term: str, result: SearchResult) -> None:
    color = GREEN if result.total_matching else RED
    print(
        f"Query: {term!r} | {color}{result.total_matching} match(es){RESET} | "
        f"page {result.page}/{max(result.total_pages, 1)}"
    )
    for idx, item in enumerate(result.items, start=1):
        score = item.relevance_score
        score_repr = f"{score:.1f}" if score is not None else "-"
        stock = "in stock" if item.stock_count > 0 else "out of stock"
        print(
            f"  {idx:02d}. score={score_repr} | {item.name} | {item.price:,.0f} | "
            f"{item.category_name or '-'} | {stock}"
        )


def run_one(engine: SearchEngine, term: str, args: argparse.Namespace) -> None:
    try:
        result = perform_query(engine, term, args)
    except SearchError as exc:
        print(f"{RED}{type(exc).__name__}: {exc}{RESET}")
        return
    pretty_print_response(term, result)


def interactive_shell(engine: SearchEngine, args: argparse.Namespace) -> None:
    print("Interactive product search. Type 'exit' to quit.")
    while True:
        try:
            term = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if term.lower() in {"exit", "quit"}:
            return
        run_one(engine, term, args)


def batch_mode(engine: SearchEngine, file_path: Path, args: argparse.Namespace) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            term = line.strip()
            if not term:
                continue
            run_one(engine, term, args)


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the catalog search engine")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--sort", default="relevance", help="relevance, price_asc, price_desc, newest, popular")
    parser.add_argument("--category", help="Restrict to a category id")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--limit", type=int, default=settings.default_page_size)
    parser.add_argument("--in-stock", action="store_true", help="Only items with stock")
    args = parser.parse_args(list(argv) if argv is not None else None)

    engine = build_engine(settings)
    if args.batch:
        batch_mode(engine, args.batch, args)
        return 0
    if args.query is not None:
        run_one(engine, args.query, args)
        return 0
    interactive_shell(engine, args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
