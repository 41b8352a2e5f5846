"""
Command line entry point.

    storefront init-db            # create tables
    storefront seed               # demo catalog + WELCOME10 coupon
    storefront serve --port 8000  # run the HTTP API
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import timedelta

from kungfu import Ok, Error

from storefront._types import utc_now
from storefront.catalog import Catalog
from storefront.config import Settings, configure_logging
from storefront.db import create_database
from storefront.discounts import DiscountValidator
from storefront.pricing import DiscountType

DEMO_PRODUCTS = (
    ("Wireless Headphones", "89.99", 25, "electronics", "Sonic"),
    ("USB-C Cable", "19.99", 200, "accessories", "Cableco"),
    ("Phone Case", "29.99", 100, "accessories", "Shell"),
    ("Mechanical Keyboard", "129.00", 15, "electronics", "Keyz"),
)


async def _init_db(settings: Settings) -> None:
    _, engine = await create_database(settings.database_url)
    await engine.dispose()


async def _seed(settings: Settings) -> None:
    session_factory, engine = await create_database(settings.database_url)
    try:
        catalog = Catalog(session_factory)
        for name, price, stock, category, brand in DEMO_PRODUCTS:
            product = await catalog.add_product(
                name=name,
                price=price,
                available_stock=stock,
                category=category,
                brand=brand,
            )
            print(f"  product {product.id}: {product.name} @ {product.price} ({product.available_stock} left)")

        now = utc_now()
        created = await DiscountValidator(session_factory).create(
            code="WELCOME10",
            kind=DiscountType.PERCENTAGE,
            value="10",
            description="10% off your first order",
            min_purchase="50.00",
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=30),
        )
        match created:
            case Ok(discount):
                print(f"  discount {discount.code}: {discount.value}% off over {discount.min_purchase}")
            case Error(e):
                print(f"  discount WELCOME10 skipped: {e.message}")
    finally:
        await engine.dispose()


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> int:
    asyncio.run(_init_db(settings))
    print(f"Initialized database at {settings.database_url}")
    return 0


def cmd_seed(args: argparse.Namespace, settings: Settings) -> int:
    print(f"Seeding {settings.database_url}")
    asyncio.run(_seed(settings))
    return 0


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from storefront.api import create_app

    uvicorn.run(create_app(settings), host=args.host, port=args.port)
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storefront", description="Storefront checkout service")
    parser.add_argument("--database-url", help="Override STOREFRONT_DATABASE_URL")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("seed", help="Insert a demo catalog and coupon")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def main() -> int:
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    settings = Settings.from_env()
    if args.database_url:
        settings = settings.with_database(args.database_url)
    configure_logging(settings)

    commands = {
        "init-db": cmd_init_db,
        "seed": cmd_seed,
        "serve": cmd_serve,
    }
    return commands[args.command](args, settings)


if __name__ == "__main__":
    sys.exit(main())
