"""Command-line interface for zakaatbasket."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

import aiohttp

from .api import ZakaatAPI
from .basket import BasketManager
from .catalog import DonationHistory, RecipientCatalog
from .config import Settings, load_settings
from .errors import ZakaatError
from .gateway import AsyncZakaatAPI
from .models import Donation, Recipient
from .money import format_amount, to_minor
from .notices import NoticeBoard
from .payment import PaymentOrchestrator, parse_callback_url

logger = logging.getLogger(__name__)

# argparse const for a bare --support: use the configured amount
SUPPORT_DEFAULT = "default"


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler()]
    )
    # Quiet down HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def amount_arg(value: str) -> int:
    """argparse type: major-unit amount to minor units."""
    try:
        return to_minor(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def positive_amount_arg(value: str) -> int:
    """argparse type: amount that must be greater than zero."""
    amount = amount_arg(value)
    if amount <= 0:
        raise argparse.ArgumentTypeError(f"amount must be greater than zero, got {value}")
    return amount


def print_notices(notices: NoticeBoard):
    for notice in notices.notices:
        print(f"[!] {notice.message}", file=sys.stderr)
    notices.clear()


def print_recipient(recipient: Recipient):
    if recipient.is_fully_funded:
        funding = "Fully funded"
    else:
        funding = f"Shortfall {format_amount(recipient.shortfall)}"
    print(f"  {recipient.id:<12} {recipient.name[:30]:<30} {recipient.location[:24]:<24} "
          f"{funding:<26} {recipient.funding_progress():5.1f}%")


def print_donation(donation: Donation):
    status = donation.payment_status.upper()
    print(f"  {donation.id:<12} {format_amount(donation.total_amount):>16} {status:<10} "
          f"{len(donation.recipients)} recipient(s) {donation.created_at or ''}")


def cmd_recipients(args, settings: Settings) -> int:
    api = ZakaatAPI(settings.api_url, settings.api_token, settings.timeout)
    notices = NoticeBoard()
    catalog = RecipientCatalog(api, notices, page_size=args.limit or settings.page_size)

    catalog.refresh(args.page)
    print_notices(notices)
    recipients = catalog.search(args.search, args.category)

    if args.format == "json":
        print(json.dumps([r.to_dict() for r in recipients], indent=2))
        return 0

    print(f"\n{'='*70}")
    print(f"RECIPIENTS (page {catalog.meta.current_page} of {catalog.meta.total_pages or 1})")
    print(f"{'='*70}")
    for recipient in recipients:
        print_recipient(recipient)
    print(f"\n{len(recipients)} recipient(s)")
    return 0


def cmd_history(args, settings: Settings) -> int:
    api = ZakaatAPI(settings.api_url, settings.api_token, settings.timeout)
    notices = NoticeBoard()
    history = DonationHistory(api, notices, page_size=args.limit or settings.page_size)

    donations = history.refresh(args.page)
    if notices.notices:
        print_notices(notices)
        return 1

    print(f"\n{'='*70}")
    print("DONATION HISTORY")
    print(f"{'='*70}")
    for donation in donations:
        print_donation(donation)
    print(f"\nTotal given: {format_amount(history.total_given())}")
    return 0


def cmd_show(args, settings: Settings) -> int:
    api = ZakaatAPI(settings.api_url, settings.api_token, settings.timeout)
    try:
        donation = api.get_donation(args.donation_id)
    except ZakaatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(json.dumps(donation.to_dict(), indent=2))
    return 0


def find_recipients(catalog: RecipientCatalog, recipient_ids: list[str]) -> list[Recipient]:
    """Page through the catalog until every requested recipient is found."""
    catalog.refresh(1)
    missing = [rid for rid in recipient_ids if not catalog.get(rid)]
    while missing and catalog.meta.has_next:
        catalog.load_more()
        missing = [rid for rid in recipient_ids if not catalog.get(rid)]
    if missing:
        raise ValueError(f"Recipient(s) not found: {', '.join(missing)}")
    return [catalog.get(rid) for rid in recipient_ids]


async def run_checkout(orchestrator: PaymentOrchestrator) -> Optional[str]:
    await orchestrator.enter_payment_step()
    session = await orchestrator.select_method("paystack")
    return session.payment_link if session else None


async def run_verify(settings: Settings, donation_id: str, reference: str, notices: NoticeBoard):
    async with aiohttp.ClientSession() as session:
        gateway = AsyncZakaatAPI(session, settings.api_url, settings.api_token, settings.timeout)
        orchestrator = PaymentOrchestrator(BasketManager(), gateway, notices)
        return await orchestrator.resume(donation_id, reference)


async def run_donate(settings: Settings, basket: BasketManager, notices: NoticeBoard) -> Optional[str]:
    async with aiohttp.ClientSession() as session:
        gateway = AsyncZakaatAPI(session, settings.api_url, settings.api_token, settings.timeout)
        orchestrator = PaymentOrchestrator(basket, gateway, notices)
        return await run_checkout(orchestrator)


def cmd_donate(args, settings: Settings) -> int:
    api = ZakaatAPI(settings.api_url, settings.api_token, settings.timeout)
    notices = NoticeBoard()
    catalog = RecipientCatalog(api, notices, page_size=settings.page_size)

    try:
        recipients = find_recipients(catalog, list(dict.fromkeys(args.recipient_ids)))
    except ValueError as e:
        print_notices(notices)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    basket = BasketManager()
    for recipient in recipients:
        basket.add_to_basket(recipient)
    basket.distribute_equally(args.total)
    if args.support is not None:
        support = settings.default_support_amount if args.support == SUPPORT_DEFAULT else args.support
        basket.set_support_zaakiyah(True, support)
    basket.set_is_anonymous(args.anonymous)

    summary = basket.summary()
    print(f"\n{'='*70}")
    print("DONATION SUMMARY")
    print(f"{'='*70}")
    for line in summary.recipient_breakdown:
        print(f"  {line.recipient_name[:40]:<40} {format_amount(line.amount):>16}")
    if summary.zaakiyah_amount:
        print(f"  {'Support Zaakiyah':<40} {format_amount(summary.zaakiyah_amount):>16}")
    print(f"  {'TOTAL':<40} {format_amount(summary.total_amount):>16}")

    link = asyncio.run(run_donate(settings, basket, notices))
    print_notices(notices)
    if not link:
        return 1

    print(f"\nComplete your payment at:\n  {link}")
    return 0


def cmd_verify(args, settings: Settings) -> int:
    if args.callback_url:
        params = parse_callback_url(args.callback_url)
        if not params:
            print("Error: callback URL has no reference/donation_id parameters", file=sys.stderr)
            return 1
        donation_id, reference = params
    elif args.donation_id and args.reference:
        donation_id, reference = args.donation_id, args.reference
    else:
        print("Error: provide --callback-url or both --donation-id and --reference", file=sys.stderr)
        return 1

    notices = NoticeBoard()
    record = asyncio.run(run_verify(settings, donation_id, reference, notices))
    if not record:
        print_notices(notices)
        return 1

    print(f"\n[OK] Donation {record.donation_id} completed: "
          f"{record.recipient_count} recipient(s), {format_amount(record.total_amount)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zakaatbasket",
        description="Select Zakaat recipients, split a donation and pay for it"
    )
    parser.add_argument("--api-url", help="Donations API base URL (default: $ZAKAAT_API_URL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Quiet mode (errors only)")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("recipients", help="List recipients")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--limit", type=int)
    p.add_argument("--search", help="Match name, location or reason for help")
    p.add_argument("--category", help="Only this category")
    p.add_argument("--format", choices=["table", "json"], default="table")
    p.set_defaults(func=cmd_recipients)

    p = sub.add_parser("history", help="List your past donations")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--limit", type=int)
    p.set_defaults(func=cmd_history)

    p = sub.add_parser("show", help="Show one donation")
    p.add_argument("donation_id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("donate", help="Split a donation equally and start payment")
    p.add_argument("recipient_ids", nargs="+", metavar="RECIPIENT_ID")
    p.add_argument("--total", type=positive_amount_arg, required=True, help="Amount to split, e.g. 5000")
    p.add_argument("--support", type=amount_arg, nargs="?", const=SUPPORT_DEFAULT,
                   help="Also support the platform (default amount if none given)")
    p.add_argument("--anonymous", action="store_true", help="Donate anonymously")
    p.set_defaults(func=cmd_donate)

    p = sub.add_parser("verify", help="Verify a payment after the gateway redirect")
    p.add_argument("--donation-id")
    p.add_argument("--reference")
    p.add_argument("--callback-url", help="Full URL the gateway redirected to")
    p.set_defaults(func=cmd_verify)

    return parser


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    if args.quiet:
        logging.basicConfig(level=logging.ERROR)
    else:
        setup_logging(args.verbose)

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)
    if args.api_url:
        settings.api_url = args.api_url

    sys.exit(args.func(args, settings))


if __name__ == "__main__":
    main()
