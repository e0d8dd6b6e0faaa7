#!/usr/bin/env python3
"""
Command line entry point for the wallet engine.

    python main.py portfolio <handle> [--timeout SECONDS] [--json]
    python main.py sell-and-remove <handle> <currency> <issuer> [--slippage PCT]
    python main.py remove-trustline <handle> <currency> <issuer>

The signed-in wallet is taken from WALLET_HANDLE, WALLET_ADDRESS, WALLET_SEED
and LINKED_WALLETS (see .env).
"""

import argparse
import asyncio
import json
import logging
import sys

from config import Settings
from errors import PreconditionError
from wallet_engine import EnvSessionStore, WalletEngine


def print_snapshot(snapshot) -> None:
    """Print the portfolio breakdown."""
    print(f"\n💰 PORTFOLIO FOR {snapshot.user_handle}")
    print("=" * 80)
    print(f"📊 Total Value: ${snapshot.total_usd:,.2f}")
    print(f"   🪙 Tokens: ${snapshot.token_value_usd:,.2f}")
    print(f"   🖼️  NFTs: ${snapshot.nft_value_usd:,.2f}")
    if not snapshot.is_complete:
        print("   ⚠️  Some assets could not be valued; total is a lower bound")

    print(f"\n📍 Addresses ({len(snapshot.addresses)})")
    for address in snapshot.addresses:
        print(f"   {address}")

    print(f"\n🪙 TOKENS")
    print("-" * 80)
    print(f"{'Symbol':<12} {'Balance':<22} {'Price':<14} {'Value (USD)':<15} {'Holder'}")
    for token in snapshot.token_details:
        price = f"${token.price_usd:,.6f}" if token.price_usd is not None else "unknown"
        value = f"${token.value_usd:,.2f}" if token.value_usd is not None else "-"
        print(
            f"{token.symbol:<12} {str(token.raw_balance):<22} {price:<14} {value:<15} {token.holder or ''}"
        )

    print(f"\n🖼️  NFT COLLECTIONS")
    print("-" * 80)
    if not snapshot.nft_details:
        print("   No NFT collections found")
    for group in snapshot.nft_details:
        floor = (
            f"{group.floor_price} XRP ({group.floor_source})"
            if group.floor_price is not None
            else "N/A"
        )
        value = f"${group.value_usd:,.2f}" if group.value_usd is not None else "-"
        print(f"   {group.display_name:<25} x{group.count:<5} floor {floor:<30} {value}")


def print_lifecycle(result) -> None:
    status = "✅" if result.success else "❌"
    print(f"\n{status} {result.currency} ({result.issuer}): {result.state.value}")
    print(f"   Phase reached: {result.phase_reached.value}")
    if result.sell_tx_hash:
        print(f"   Sell tx: {result.sell_tx_hash}")
    if result.remove_tx_hash:
        print(f"   Remove tx: {result.remove_tx_hash}")
    if result.error:
        print(f"   Error at {result.failed_step}: {result.error}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wallet valuation and trustline tools")
    sub = parser.add_subparsers(dest="command", required=True)

    portfolio = sub.add_parser("portfolio", help="Value every wallet of a user")
    portfolio.add_argument("handle")
    portfolio.add_argument("--timeout", type=float, default=None)
    portfolio.add_argument("--json", action="store_true", help="Print JSON only")

    sell = sub.add_parser("sell-and-remove", help="Sell a token and remove its trustline")
    sell.add_argument("handle")
    sell.add_argument("currency")
    sell.add_argument("issuer")
    sell.add_argument("--slippage", type=float, default=None)

    remove = sub.add_parser("remove-trustline", help="Remove an empty trustline")
    remove.add_argument("handle")
    remove.add_argument("currency")
    remove.add_argument("issuer")

    return parser


async def run(args, settings: Settings) -> int:
    async with WalletEngine(EnvSessionStore(), settings) as engine:
        if args.command == "portfolio":
            snapshot = await engine.get_portfolio_snapshot(args.handle, timeout=args.timeout)
            if args.json:
                print(json.dumps(snapshot.to_dict(), indent=2))
            else:
                print_snapshot(snapshot)
            return 0

        if args.command == "sell-and-remove":
            result = await engine.sell_all_and_remove_trustline(
                args.handle, args.currency, args.issuer, args.slippage
            )
        else:
            result = await engine.remove_trustline(args.handle, args.currency, args.issuer)

        print_lifecycle(result)
        return 0 if result.success else 1


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(run(args, settings))
    except PreconditionError as e:
        print(f"❌ {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
