"""
Command-line interface for Sift.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import tqdm
from dotenv import load_dotenv

from sift.config import get_config
from sift.core.extractor import ContentExtractor
from sift.core.models import ApprovalStatus, BlockType, NewsletterSource, RoutingResult
from sift.core.router import InboundRouter
from sift.core.store import SqliteStore
from sift.core.webhook import signature_fields, verify_webhook_signature
from sift.fetchers.newsletter_page import NewsletterPageDetector

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging in the format shared by all Sift modules."""
    level_name = (level or get_config('logging.level', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Arguments to parse, sys.argv when omitted

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Sift - newsletter inbox processor")
    parser.add_argument("--log-level", help="Logging level (default from config)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Extract structured content from an HTML file")
    extract.add_argument("file", help="Path to the newsletter HTML")
    extract.add_argument("--source", default="Unknown", help="Newsletter name")

    add_user = subparsers.add_parser("add-user", help="Create a user with a generated inbox address")
    add_user.add_argument("email")
    add_user.add_argument("--db", help="Path to the SQLite database")

    block = subparsers.add_parser("block", help="Add a block rule for a user")
    block.add_argument("user_id")
    block.add_argument("block_type", choices=[t.value for t in BlockType])
    block.add_argument("value")
    block.add_argument("--reason")
    block.add_argument("--db", help="Path to the SQLite database")

    route = subparsers.add_parser("route", help="Route Mailgun-style JSON payload files")
    route.add_argument("payloads", nargs="+", help="Payload JSON files")
    route.add_argument("--db", help="Path to the SQLite database")

    approve = subparsers.add_parser("approve", help="Approve stored content")
    approve.add_argument("content_id")
    approve.add_argument("--db", help="Path to the SQLite database")

    detect = subparsers.add_parser("detect", help="Detect a newsletter from its landing page")
    detect.add_argument("url")

    return parser.parse_args(argv)


def _print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_extract(args: argparse.Namespace) -> int:
    html = Path(args.file).read_text(encoding="utf-8")
    outcome = ContentExtractor().extract(html, NewsletterSource(name=args.source))
    _print_json(outcome.to_dict())
    return 0 if outcome.success else 1


def cmd_add_user(args: argparse.Namespace) -> int:
    user = SqliteStore(args.db).create_user(args.email)
    _print_json({"id": user.id, "email": user.email, "inboxEmail": user.inbox_email})
    return 0


def cmd_block(args: argparse.Namespace) -> int:
    rule = SqliteStore(args.db).add_block_rule(args.user_id, args.block_type, args.value, args.reason)
    _print_json({"id": rule.id, "blockType": rule.block_type.value, "blockValue": rule.block_value})
    return 0


def route_payload(router: InboundRouter, path: str) -> RoutingResult:
    """
    Verify and route one payload file.

    Args:
        router: The inbound router
        path: Path to a JSON payload

    Returns:
        RoutingResult for the payload
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read payload {path}: {e}")
        return RoutingResult(success=False, message='Message not routed', error=str(e))

    if isinstance(payload, dict):
        fields = signature_fields(payload)
        if not verify_webhook_signature(fields['signature'], fields['timestamp'], fields['token']):
            logger.warning(f"Invalid webhook signature in {path}")
            return RoutingResult(success=False, message='Message not routed', error='Invalid signature')

    return router.route_webhook(payload)


def cmd_route(args: argparse.Namespace) -> int:
    router = InboundRouter(SqliteStore(args.db))
    failures = 0

    with tqdm.tqdm(total=len(args.payloads), desc="Routing messages") as pbar:
        for path in args.payloads:
            result = route_payload(router, path)
            if not result.success:
                failures += 1
            _print_json({"payload": path, **result.to_dict()})
            pbar.update(1)

    logger.info(f"Routed {len(args.payloads) - failures}/{len(args.payloads)} messages")
    return 0 if failures == 0 else 1


def cmd_approve(args: argparse.Namespace) -> int:
    if not SqliteStore(args.db).set_approval_status(args.content_id, ApprovalStatus.APPROVED):
        logger.error(f"Content not found: {args.content_id}")
        return 1
    _print_json({"id": args.content_id, "approvalStatus": ApprovalStatus.APPROVED.value})
    return 0


def cmd_detect(args: argparse.Namespace) -> int:
    result = NewsletterPageDetector().detect(args.url)
    _print_json(result.to_dict())
    return 0 if result.success else 1


COMMANDS = {
    "extract": cmd_extract,
    "add-user": cmd_add_user,
    "block": cmd_block,
    "route": cmd_route,
    "approve": cmd_approve,
    "detect": cmd_detect,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the command-line script.
    """
    load_dotenv(override=True)
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        return COMMANDS[args.command](args)
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        return 1
    except Exception as e:
        logger.exception(f"An error occurred: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
