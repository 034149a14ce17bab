"""Command-line interface for inspecting basket prices."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .app import EquiBasketApp, build_app
from .config import AppConfig, load_config
from .errors import EquiBasketError
from .fixed_point import from_wad, rescale_exponent
from .logging_setup import configure_logging
from .oracles import HermesClient


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="equibasket",
        description="Synthetic basket oracle and collateral vault",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("baskets", help="List configured baskets with current prices")

    price_parser = sub.add_parser("price", help="Weighted price of one basket")
    price_parser.add_argument("basket_id", type=int)

    validate_parser = sub.add_parser("validate", help="Check every constituent has a price")
    validate_parser.add_argument("basket_id", type=int)

    sub.add_parser("fetch-prices", help="Fetch live prices for configured Pyth feeds")

    return parser


def _format_price(value: int) -> str:
    return f"${from_wad(value):,.4f}"


def _cmd_baskets(app: EquiBasketApp) -> int:
    baskets = app.registry.all_baskets()
    if not baskets:
        print("No baskets configured.")
        return 0
    for basket in baskets:
        composition = ", ".join(
            f"{asset} {weight / 100:.2f}%"
            for asset, weight in zip(basket.assets, basket.weights)
        )
        try:
            price = _format_price(app.oracle.get_basket_price(basket.basket_id))
        except EquiBasketError as e:
            price = f"unavailable ({e})"
        status = "active" if basket.active else "inactive"
        print(f"#{basket.basket_id} {basket.symbol} ({basket.name}) [{status}]")
        print(f"  {composition}")
        print(f"  Price: {price}")
    return 0


def _cmd_price(app: EquiBasketApp, basket_id: int) -> int:
    try:
        price = app.oracle.get_basket_price(basket_id)
    except EquiBasketError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(_format_price(price))
    return 0


def _cmd_validate(app: EquiBasketApp, basket_id: int) -> int:
    try:
        result = app.oracle.validate_basket_prices(basket_id)
    except EquiBasketError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if result.valid:
        print(f"Basket {basket_id}: all prices available")
        return 0
    print(f"Basket {basket_id}: missing price for {result.missing_asset}")
    return 1


async def _cmd_fetch_prices(config: AppConfig) -> int:
    client = HermesClient(config.oracle.pyth)
    updates = await client.fetch_updates()
    if not updates:
        print("No prices fetched.")
        return 1
    for asset, update in sorted(updates.items()):
        scaled = rescale_exponent(update.price, update.expo)
        print(f"{asset}: {_format_price(scaled)} (published {update.publish_time})")
    return 0


def _run(args: argparse.Namespace) -> int:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "fetch-prices":
        return asyncio.run(_cmd_fetch_prices(config))

    app = build_app(config)
    if args.command == "baskets":
        return _cmd_baskets(app)
    if args.command == "price":
        return _cmd_price(app, args.basket_id)
    if args.command == "validate":
        return _cmd_validate(app, args.basket_id)

    build_parser().print_help()
    return 1


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(_run(args))
