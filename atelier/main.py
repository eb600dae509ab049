"""Entry point for the atelier kiosk and operator dashboard."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from atelier import commands
from atelier.config import DB_PATH, LOG_PATH
from atelier.dashboard_app import DashboardApp
from atelier.data import DEFAULT_SETTINGS
from atelier.images import image_to_data_url
from atelier.kiosk_app import KioskApp
from atelier.models import AppSettings, DiningMode, InventoryItem, Product
from atelier.persistence import DocumentNotFoundError, DocumentStore, StoreError
from atelier.realtime import PRODUCTS, SETTINGS, SETTINGS_DOC_ID, RealtimeStore

logger = logging.getLogger(__name__)

_MODES = {"emporte": DiningMode.EMPORTE, "sur-place": DiningMode.SUR_PLACE}


def configure_logging(verbose: bool = False, path: str = LOG_PATH) -> None:
    """Send logs to a file; the terminal belongs to the UI."""
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        filename=str(log_path),
        encoding="utf-8",
    )


def open_store(db_path: str) -> DocumentStore:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    store = DocumentStore(db_path)
    store.bootstrap_schema()
    return store


async def run_kiosk(store: DocumentStore, mode: DiningMode) -> None:
    async with RealtimeStore(store) as realtime:
        await KioskApp(realtime, mode).run_async()


async def run_dashboard(store: DocumentStore) -> None:
    async with RealtimeStore(store) as realtime:
        await DashboardApp(realtime).run_async()


async def add_product(store: DocumentStore, args: argparse.Namespace) -> str:
    image_url = image_to_data_url(args.image) if args.image else ""
    product = Product(
        id="",
        name=args.name,
        price=args.price,
        category=args.category,
        description=args.description,
        image_url=image_url,
        tags=tuple(args.tag),
        is_promoted=args.promoted,
    )
    return await commands.add_product(store, product)


async def edit_product(store: DocumentStore, args: argparse.Namespace) -> Product:
    doc = await store.get(PRODUCTS, args.product_id)
    if doc is None:
        raise DocumentNotFoundError(f"No product {args.product_id}")
    product = Product.from_document(doc)
    changes = {
        field: value
        for field, value in (
            ("name", args.name),
            ("price", args.price),
            ("category", args.category),
            ("description", args.description),
            ("is_promoted", args.promoted),
        )
        if value is not None
    }
    if args.image:
        changes["image_url"] = image_to_data_url(args.image)
    product = replace(product, **changes)
    await commands.update_product(store, product)
    return product


async def add_stock(store: DocumentStore, args: argparse.Namespace) -> str:
    item = InventoryItem(id="", name=args.name, quantity=args.quantity, unit=args.unit, threshold=args.threshold)
    return await commands.add_inventory_item(store, item)


async def change_settings(store: DocumentStore, args: argparse.Namespace) -> AppSettings:
    current = DEFAULT_SETTINGS.merged(await store.get(SETTINGS, SETTINGS_DOC_ID))
    changes = {
        field: value
        for field, value in (
            ("app_name", args.app_name),
            ("slogan", args.slogan),
            ("currency", args.currency),
            ("contact_email", args.contact_email),
            ("contact_phone", args.contact_phone),
        )
        if value is not None
    }
    if args.maintenance is not None:
        changes["is_maintenance_mode"] = args.maintenance == "on"
    settings = replace(current, **changes)
    await commands.update_settings(store, settings)
    return settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="atelier",
        description="Restaurant ordering kiosk and operator dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  atelier kiosk --mode sur-place    Customer kiosk for on-site dining
  atelier dashboard                 Operator dashboard (login required)
  atelier seed                      Write the demo catalog and stock
  atelier settings --maintenance on  Pause kiosk ordering
  atelier add-staff --name Moussa --email m@example.com --password pw --role Caissier
        """,
    )
    parser.add_argument("--db", default=DB_PATH, help=f"Store database path (default: {DB_PATH})")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    kiosk = sub.add_parser("kiosk", help="Run the customer kiosk")
    kiosk.add_argument("--mode", choices=sorted(_MODES), default="emporte", help="Dining mode (default: emporte)")

    sub.add_parser("dashboard", help="Run the operator dashboard")
    sub.add_parser("seed", help="Write demo products, stock and settings")

    product = sub.add_parser("add-product", help="Add one product to the catalog")
    product.add_argument("--name", required=True)
    product.add_argument("--price", type=int, required=True, help="Unit price in whole currency units")
    product.add_argument("--category", required=True)
    product.add_argument("--description", default="")
    product.add_argument("--tag", action="append", default=[], help="Repeatable")
    product.add_argument("--image", help="Image file, stored inline as a JPEG data URL")
    product.add_argument("--promoted", action="store_true")

    edit = sub.add_parser("edit-product", help="Change fields of an existing product")
    edit.add_argument("product_id")
    edit.add_argument("--name")
    edit.add_argument("--price", type=int)
    edit.add_argument("--category")
    edit.add_argument("--description")
    edit.add_argument("--image", help="Replacement image file")
    edit.add_argument("--promoted", action=argparse.BooleanOptionalAction, default=None)

    stock = sub.add_parser("add-stock", help="Track a new raw material")
    stock.add_argument("--name", required=True)
    stock.add_argument("--quantity", type=float, required=True)
    stock.add_argument("--unit", required=True, help="kg, L, pcs...")
    stock.add_argument("--threshold", type=float, required=True, help="Alert at or below this quantity")

    staff = sub.add_parser("add-staff", help="Create a verified staff account (can log into the dashboard)")
    staff.add_argument("--name", required=True)
    staff.add_argument("--email", required=True)
    staff.add_argument("--password", required=True)
    staff.add_argument("--role", required=True, help="e.g. Cuisinier, Caissier")
    staff.add_argument("--phone", default="")

    supplier = sub.add_parser("register-supplier", help="Create an unverified supplier account")
    supplier.add_argument("--name", default="")
    supplier.add_argument("--password", required=True)
    supplier.add_argument("--email", default="")
    supplier.add_argument("--phone", default="")
    supplier.add_argument("--category", default="")

    settings = sub.add_parser("settings", help="Update vendor settings")
    settings.add_argument("--app-name")
    settings.add_argument("--slogan")
    settings.add_argument("--currency")
    settings.add_argument("--contact-email")
    settings.add_argument("--contact-phone")
    settings.add_argument("--maintenance", choices=("on", "off"), help="Pause kiosk ordering")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the requested command."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    store = open_store(args.db)
    logger.info("command=%s db=%s", args.command, args.db)

    try:
        if args.command == "kiosk":
            asyncio.run(run_kiosk(store, _MODES[args.mode]))
        elif args.command == "dashboard":
            asyncio.run(run_dashboard(store))
        elif args.command == "seed":
            products, items = asyncio.run(commands.seed_demo_data(store))
            print(f"Seeded {products} products and {items} stock items into {args.db}")
        elif args.command == "add-product":
            product_id = asyncio.run(add_product(store, args))
            print(f"Added product {product_id}")
        elif args.command == "edit-product":
            product = asyncio.run(edit_product(store, args))
            print(f"Updated product {product.id} ({product.name})")
        elif args.command == "add-stock":
            item_id = asyncio.run(add_stock(store, args))
            print(f"Added stock item {item_id}")
        elif args.command == "add-staff":
            staff_id = asyncio.run(
                commands.add_staff_user(store, args.name, args.email, args.password, args.role, args.phone)
            )
            print(f"Added staff account {staff_id}")
        elif args.command == "register-supplier":
            account = asyncio.run(
                commands.register_supplier(
                    store, args.name, args.password, email=args.email, phone=args.phone, category=args.category
                )
            )
            print(f"Registered supplier {account.id} (awaiting verification)")
        elif args.command == "settings":
            settings = asyncio.run(change_settings(store, args))
            state = "on" if settings.is_maintenance_mode else "off"
            print(f"Settings saved: {settings.app_name}, maintenance {state}")
    except (StoreError, ValueError, RuntimeError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
