"""
One-shot command line runner for the notification tick and token sweep.

Usage:
    prnudge notifications   - Run one notification tick
    prnudge tokens          - Run one token refresh sweep

Exits with status 1 when the tick or sweep itself fails.
"""

import asyncio
import sys
from typing import List, Optional

from prnudge.core import db_manager
from prnudge.core.config import get_global_settings
from prnudge.core.logging import setup_logging
from prnudge.features.notifications import process_scheduled_notifications
from prnudge.features.tokens import refresh_expiring_tokens


def print_usage() -> None:
    """Print usage information."""
    print("Usage:")
    print("  prnudge notifications   - Run one notification tick")
    print("  prnudge tokens          - Run one token refresh sweep")


async def run_notifications() -> bool:
    """Run one notification tick and print its summary."""
    summary = await process_scheduled_notifications()
    print(summary.model_dump_json(indent=2))
    return summary.success


async def run_tokens() -> bool:
    """Run one token refresh sweep and print its summary."""
    summary = await refresh_expiring_tokens()
    print(summary.model_dump_json(indent=2))
    return summary.success


COMMANDS = {
    "notifications": run_notifications,
    "tokens": run_tokens,
}


async def main(argv: List[str]) -> int:
    """
    Main entry point.

    :param argv: Command line arguments without the program name
    :returns: Process exit status
    """
    if not argv:
        print("Error: Missing command\n")
        print_usage()
        return 1

    command = COMMANDS.get(argv[0].lower())
    if command is None:
        print(f"Error: Unknown command '{argv[0]}'\n")
        print_usage()
        return 1

    try:
        succeeded = await command()
    finally:
        await db_manager.close()
    return 0 if succeeded else 1


def run(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    setup_logging(get_global_settings().log_level)
    try:
        status = asyncio.run(main(sys.argv[1:] if argv is None else argv))
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user")
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    run()
