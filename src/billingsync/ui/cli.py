from __future__ import annotations

import argparse
import logging
import sys
from functools import partial
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

import uvicorn
from dotenv import load_dotenv

from billingsync.adapters.google_play import decode_notification_data, decode_push_envelope
from billingsync.adapters.sqlalchemy.migrations import upgrade_head
from billingsync.app import build_services
from billingsync.config import ConfigurationError, configure_logging, get_database_config
from billingsync.domain.errors import BillingError
from billingsync.domain.verification import VerifyRequest
from billingsync.web import create_app

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from billingsync.domain.notifications import DeveloperNotification

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile Google Play subscriptions")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: %(default)s)")
    serve.add_argument("--port", type=int, default=8000, help="Port to bind (default: %(default)s)")

    verify = subparsers.add_parser("verify", help="Verify a purchase token for a user")
    verify.add_argument("--user-id", required=True, help="Account the purchase belongs to")
    verify.add_argument("--package-name", required=True, help="Application package name")
    verify.add_argument("--product-id", required=True, help="Subscription product id")
    verify.add_argument("--purchase-token", required=True, help="Token issued by Google Play")

    notify = subparsers.add_parser(
        "notify",
        help="Process a developer notification from a file",
    )
    notify.add_argument(
        "path",
        type=Path,
        help="JSON file holding a Pub/Sub push envelope or a bare developer notification",
    )

    subparsers.add_parser("migrate", help="Upgrade the database schema to the latest revision")

    return parser.parse_args(list(argv))


def _load_notification(path: Path) -> DeveloperNotification:
    raw = path.read_bytes()
    if b'"message"' in raw:
        _, notification = decode_push_envelope(raw)
        return notification
    return decode_notification_data(raw, message_id=path.name)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        if parsed_args.command == "serve":
            database = get_database_config(allow_local_default=False)
            app = create_app(services_factory=partial(build_services, database_uri=database.uri))
            uvicorn.run(app, host=parsed_args.host, port=parsed_args.port)
        elif parsed_args.command == "verify":
            request = VerifyRequest(
                user_id=parsed_args.user_id,
                package_name=parsed_args.package_name,
                product_id=parsed_args.product_id,
                purchase_token=parsed_args.purchase_token,
            )
            services = build_services(authenticate_push=False)
            try:
                outcome = services.verifier.verify(request)
            finally:
                services.close()
            log.info("Verification finished: %s", outcome.value)
        elif parsed_args.command == "notify":
            notification = _load_notification(parsed_args.path)
            services = build_services(authenticate_push=False)
            try:
                outcomes = services.processor.process(notification)
            finally:
                services.close()
            log.info("Notification processed: %s", ", ".join(outcomes))
        elif parsed_args.command == "migrate":
            database_uri = get_database_config().uri
            upgrade_head(database_uri=database_uri)
            log.info("Database schema is up to date")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ConfigurationError, OSError, ValueError):
        log.exception("Invalid configuration or input")
        sys.exit(2)
    except BillingError as exc:
        log.error("%s failed with %s: %s", parsed_args.command, exc.code, exc)  # noqa: TRY400
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
