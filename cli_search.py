"""Terminal client that runs the search pipeline in-process."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, Optional

from marketsearch.config import settings
from marketsearch.errors import SearchError
from marketsearch.models import ProductsAnswer, SearchParams
from marketsearch.providers import StaticProvider
from marketsearch.search_service import SearchService, build_service

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"
ORDERS = {"asc": False, "desc": True}


def _order(value: Optional[str]) -> Optional[bool]:
    return ORDERS[value] if value else None


def params_from_args(query: str, args: argparse.Namespace) -> SearchParams:
    return SearchParams(
        term=query,
        user=args.login,
        low_price=args.low_price,
        high_price=args.high_price,
        price_order=_order(args.price_order),
        name_order=_order(args.name_order),
        page=args.page,
        page_size=args.page_size,
        rating=args.rating,
        marketplace=args.marketplace,
    )


def pretty_print_response(query: str, answer: ProductsAnswer) -> None:
    color = GREEN if answer.count else RED
    print(f"Query: {query} | matches: {color}{answer.count}{RESET} | shown: {len(answer.products)}")
    for idx, product in enumerate(answer.products, start=1):
        print(f"  {idx:02d}. {product.price:>8} | {product.rating:.1f} | {product.marketplace} | {product.name}")


def run_query(service: SearchService, query: str, args: argparse.Namespace) -> int:
    try:
        answer = service.search(params_from_args(query, args))
    except SearchError as exc:
        print(f"{RED}{exc.message}{RESET}")
        return 1
    pretty_print_response(query, answer)
    return 0


def interactive_shell(service: SearchService, args: argparse.Namespace) -> None:
    print("Interactive product search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        run_query(service, query, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CLI client for the market search service")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--offers", type=Path, help="JSON file with offers to search instead of Elasticsearch")
    parser.add_argument("--login", help="Record the query in this user's history")
    parser.add_argument("--low-price", type=int)
    parser.add_argument("--high-price", type=int)
    parser.add_argument("--price-order", choices=sorted(ORDERS))
    parser.add_argument("--name-order", choices=sorted(ORDERS))
    parser.add_argument("--rating", type=float, help="Minimum rating, 0-5")
    parser.add_argument("--marketplace", help=f"One of: {', '.join(settings.marketplaces)}")
    parser.add_argument("--page", type=int, default=0)
    parser.add_argument("--page-size", type=int, default=10)
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=logging.getLevelName(settings.log_level.upper()))

    provider = StaticProvider.from_file(args.offers) if args.offers else None
    service = build_service(provider)
    if args.query:
        return run_query(service, args.query, args)
    interactive_shell(service, args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
