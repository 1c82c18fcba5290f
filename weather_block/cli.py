"""
Operator command line for the weather block service.

Mints request nonces signed with the configured ``NONCE_SECRET``, for admin
tooling that calls the settings and cache endpoints. Anyone able to run this
can read the secret, so the admin nonce is only ever issued here.

Usage:
    python -m weather_block.cli nonce --action admin
    python -m weather_block.cli nonce --action rest
"""

import argparse
import logging
import sys

from weather_block.config.settings import Settings, settings
from weather_block.utils.nonce import ADMIN_ACTION, REST_ACTION, create_nonce

logger = logging.getLogger(__name__)

NONCE_ACTIONS = {"rest": REST_ACTION, "admin": ADMIN_ACTION}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weather_block.cli",
        description="Weather block operator commands",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    nonce_parser = subparsers.add_parser(
        "nonce", help="Print a nonce for the X-WP-Nonce header"
    )
    nonce_parser.add_argument(
        "--action",
        choices=sorted(NONCE_ACTIONS),
        default="admin",
        help="Nonce action (default admin)",
    )
    return parser


def main(argv: list[str] | None = None, settings_obj: Settings | None = None) -> int:
    """CLI entry point; prints the requested value and returns the exit code."""
    args = build_parser().parse_args(argv)
    settings_obj = settings_obj or settings

    if args.command == "nonce":
        if settings_obj.is_production and settings_obj.nonce_secret == "change-me":
            logger.error("NONCE_SECRET must be changed in production")
            return 1

        print(
            create_nonce(
                NONCE_ACTIONS[args.action],
                settings_obj.nonce_secret,
                settings_obj.nonce_lifetime_seconds,
            )
        )

    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(main())
