"""
Vibing marketplace command line.

Usage:
    # Log in (password is prompted when omitted)
    vibing login --email dev@example.com

    # Browse listings
    vibing products --category cli-tools --sort price-low --price under-10

    # Purchase history, newest first
    vibing purchases --status completed

    # Who am I, and my conversations
    vibing whoami
    vibing conversations

    # Keep polling for new messages (Ctrl-C to stop)
    vibing watch --interval 10
"""

import argparse
import asyncio
import getpass
import sys

from vibing.api.client import ApiClient
from vibing.catalog import (
    PRICE_FILTERS,
    PURCHASE_SORT_OPTIONS,
    PURCHASE_STATUS_FILTERS,
    SORT_OPTIONS,
)
from vibing.config import settings
from vibing.exceptions import VibingError
from vibing.formatting import calculate_total, format_datetime, format_price, status_badge
from vibing.observability import get_logger, log_context, setup_logging, setup_tracing
from vibing.observability.metrics import start_metrics_server
from vibing.services.auth_session import AuthSession
from vibing.services.chat import ChatSession
from vibing.services.product_catalog import ProductCatalog
from vibing.services.purchases import PurchaseManager
from vibing.services.store import Store
from vibing.services.token_store import FileTokenStore

logger = get_logger(__name__)


async def cmd_login(client: ApiClient, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    session = AuthSession(client)
    user = await session.login(args.email, password)
    print(f"Logged in as {user.name or user.email} ({user.role.value})")
    return 0


async def cmd_logout(client: ApiClient, args: argparse.Namespace) -> int:
    session = AuthSession(client)
    await session.initialize()
    await session.logout()
    print("Logged out")
    return 0


async def cmd_whoami(client: ApiClient, args: argparse.Namespace) -> int:
    session = AuthSession(client)
    await session.initialize()
    if session.user is None:
        print("Not logged in", file=sys.stderr)
        return 1
    user = session.user
    print(f"{user.name} <{user.email}>")
    print(f"  role: {user.role.value}")
    if user.phone:
        verified = "verified" if user.phone_verified else "unverified"
        print(f"  phone: {user.phone} ({verified})")
    return 0


async def cmd_products(client: ApiClient, args: argparse.Namespace) -> int:
    catalog = ProductCatalog(client)
    changed = await catalog.set_filters(
        category=args.category,
        sort=args.sort,
        price_filter=args.price,
        search=args.search,
    )
    if not changed or args.page != 1:
        await catalog.set_page(args.page)
    if catalog.error:
        print(f"Error: {catalog.error}", file=sys.stderr)
        return 1

    for product in catalog.products:
        total = format_price(calculate_total(product.price))
        print(f"{product.id:<24} ${product.price:>8.2f}  {total:>12}  {product.title}")
    pages = catalog.pagination
    print(f"-- page {pages.current_page}/{pages.total_pages} ({pages.total_items} products)")
    return 0


async def cmd_purchases(client: ApiClient, args: argparse.Namespace) -> int:
    manager = PurchaseManager(client)
    await manager.load_history(page=args.page)
    manager.set_status_filter(args.status)
    manager.set_sort(args.sort)

    for item in manager.filtered_history:
        badge = status_badge(item.status)
        print(
            f"{format_datetime(item.purchase_date)}  {badge.text:<10} "
            f"${item.price:>8.2f}  {item.product.title}"
        )
    if not manager.filtered_history:
        print("No purchases")
    return 0


async def cmd_conversations(client: ApiClient, args: argparse.Namespace) -> int:
    chat = ChatSession(client)
    conversations = await chat.refresh_conversations()
    for conv in conversations:
        unread = f" [{conv.unread_count} unread]" if conv.unread_count else ""
        about = f" re: {conv.product_name}" if conv.product_name else ""
        last = conv.last_message.text if conv.last_message else ""
        print(f"{conv.other_user_name}{about}{unread}")
        if last:
            print(f"    {last}")
    print(f"-- {chat.unread_count} unread")
    return 0


async def cmd_watch(client: ApiClient, args: argparse.Namespace) -> int:
    session = AuthSession(client)
    chat = ChatSession(client, auth=session, poll_interval=args.interval)
    await session.initialize()
    if not session.is_authenticated:
        await chat.close()
        print("Not logged in", file=sys.stderr)
        return 1

    if start_metrics_server(settings.metrics_port):
        logger.info("metrics_server_started", port=settings.metrics_port)

    last_unread = -1

    def report(store: Store) -> None:
        nonlocal last_unread
        if chat.unread_count != last_unread:
            last_unread = chat.unread_count
            print(f"{last_unread} unread in {len(chat.conversations)} conversations")

    chat.subscribe(report)
    try:
        while chat.is_polling:
            await asyncio.sleep(args.interval)
    finally:
        await chat.close()
    print("Session ended", file=sys.stderr)
    return 1


COMMANDS = {
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "products": cmd_products,
    "purchases": cmd_purchases,
    "conversations": cmd_conversations,
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vibing",
        description="Vibing marketplace client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--api-url", help=f"API base URL (default: {settings.api_url})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Log in and store the session")
    login.add_argument("--email", required=True)
    login.add_argument("--password", help="Prompted for when omitted")

    sub.add_parser("logout", help="Log out and forget the stored session")
    sub.add_parser("whoami", help="Show the logged-in user")

    products = sub.add_parser("products", help="Browse product listings")
    products.add_argument("--category", default="all")
    products.add_argument("--sort", default="newest", choices=[s.value for s in SORT_OPTIONS])
    products.add_argument("--price", default="all", choices=[p.value for p in PRICE_FILTERS])
    products.add_argument("--search", default="")
    products.add_argument("--page", type=int, default=1)

    purchases = sub.add_parser("purchases", help="Show purchase history")
    purchases.add_argument("--status", default="all", choices=PURCHASE_STATUS_FILTERS)
    purchases.add_argument(
        "--sort", default="newest", choices=[s.value for s in PURCHASE_SORT_OPTIONS]
    )
    purchases.add_argument("--page", type=int, default=1)

    sub.add_parser("conversations", help="List chat conversations")

    watch = sub.add_parser("watch", help="Poll conversations until the session ends")
    watch.add_argument(
        "--interval", type=float, default=settings.chat_poll_interval, help="Seconds between polls"
    )
    return parser


async def run(args: argparse.Namespace) -> int:
    store = FileTokenStore(settings.storage_path)
    with log_context(command=args.command):
        async with ApiClient(store, base_url=args.api_url) as client:
            return await COMMANDS[args.command](client, args)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)
    setup_tracing()

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
    except VibingError as exc:
        logger.debug("command_failed", command=args.command, error=repr(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
