#!/usr/bin/env python3
"""Simple CLI for quoting swap routes locally"""

import argparse
import asyncio
from typing import Optional

from routeviz.config import settings
from routeviz.core.errors import RouteVizError
from routeviz.core.formatting import format_amount, format_percent
from routeviz.core.routes import GraphView, RouteSet, TokenDescriptor
from routeviz.core.routes.models import QuoteRequest
from routeviz.core.swap import SwapStateMachine
from routeviz.logging_config import setup_logging
from routeviz.providers.base import TokenRegistryError
from routeviz.providers.jupiter import get_swap_provider, get_token_provider


def print_routes(route_set: RouteSet, input_token: TokenDescriptor, output_token: TokenDescriptor):
    """Pretty print ranked routes"""
    if route_set.is_empty:
        print("❌ No route found")
        return

    print(f"\n🔀 {len(route_set)} route(s) for {input_token.symbol} → {output_token.symbol}")
    print("=" * 60)
    for i, route in enumerate(route_set):
        marker = "▶" if i == route_set.selected_index else " "
        path = " → ".join(route.venues) or "Direct"
        print(
            f"{marker} {i:2d}. {format_amount(route.out_amount, output_token.decimals):>16} {output_token.symbol:<8}"
            f" impact {format_percent(route.price_impact_pct):>7}  {route.hop_count} hop(s)"
        )
        print(f"       {path}")


def print_graph(graph: GraphView):
    """Print a graph as an edge list"""
    labels = {node.id: node.label for node in graph.nodes}
    print(f"\n📈 Route {graph.route_index}")
    for edge in graph.edges:
        print(f"   {labels[edge.source]} --[{edge.label}]--> {labels[edge.target]}")


async def cli_tokens(query: str, limit: int = 10):
    """CLI command to search the token list"""
    print(f"🔍 Searching tokens for '{query}'...")
    provider = get_token_provider()
    try:
        tokens = await provider.search(query, limit=limit)
    except TokenRegistryError as e:
        print(f"❌ Error: {e}")
        return
    finally:
        await provider.close()

    if not tokens:
        print("No matching tokens")
        return
    for token in tokens:
        print(f"{token.symbol:<10} {token.decimals:>2}  {token.address}  {token.name}")


async def cli_quote(
    input_query: str,
    output_query: str,
    amount: str,
    slippage: Optional[str] = None,
    select: Optional[int] = None,
    compare: bool = False,
):
    """CLI command to quote and rank routes"""
    tokens = get_token_provider()
    aggregator = get_swap_provider()
    try:
        input_token = await tokens.resolve(input_query)
        output_token = await tokens.resolve(output_query)
        for query, token in ((input_query, input_token), (output_query, output_token)):
            if token is None:
                print(f"❌ Unknown token: {query}")
                return

        machine = SwapStateMachine(aggregator)
        request = QuoteRequest(
            input_token=input_token,
            output_token=output_token,
            amount=amount,
            slippage_pct=slippage if slippage is not None else str(settings.default_slippage_pct),
        )
        print(f"💱 Quoting {amount} {input_token.symbol} → {output_token.symbol}...")
        route_set = await machine.request_quote(request)
        if route_set is None:
            print(f"❌ Quote failed: {machine.last_error.message}")
            return

        if select is not None and not route_set.is_empty:
            machine.select_route(select)
        if compare and not route_set.is_empty:
            machine.toggle_compare_all()

        print_routes(machine.route_set, input_token, output_token)
        for graph in machine.graphs():
            print_graph(graph)

        if machine.high_impact_warning:
            print(f"\n⚠️  High price impact: {format_percent(machine.selected_route.price_impact_pct)}")
    except (RouteVizError, TokenRegistryError) as e:
        print(f"❌ Error: {e}")
    finally:
        await tokens.close()
        await aggregator.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Swap Route Visualizer CLI")
    subparsers = parser.add_subparsers(dest="command")

    quote_parser = subparsers.add_parser("quote", help="Quote and rank swap routes")
    quote_parser.add_argument("input", help="Input token symbol or mint address")
    quote_parser.add_argument("output", help="Output token symbol or mint address")
    quote_parser.add_argument("amount", help="Amount of input token (human units)")
    quote_parser.add_argument("--slippage", help="Slippage tolerance in percent (default from settings)")
    quote_parser.add_argument("--select", type=int, help="Ranked route index to select")
    quote_parser.add_argument("--compare", action="store_true", help="Show graphs for every route")

    tokens_parser = subparsers.add_parser("tokens", help="Search the token list")
    tokens_parser.add_argument("query", help="Symbol or address fragment")
    tokens_parser.add_argument("--limit", type=int, default=10, help="Max results (default: 10)")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()
    setup_logging()

    if not args.command:
        parser.print_help()
        return

    command = args.command.lower()

    if command == "quote":
        await cli_quote(args.input, args.output, args.amount, args.slippage, args.select, args.compare)

    elif command == "tokens":
        if args.limit <= 0:
            raise ValueError("Limit must be positive")
        await cli_tokens(args.query, args.limit)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    asyncio.run(main())
