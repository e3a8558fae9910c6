"""CLI entry point and argument parsing"""

import argparse
import asyncio
import logging
import sys

import settings
from auth_cli import CLIAuthFlow
from oauth import ConfigurationError
from utils.debug_console import configure_logging, create_debug_console
from utils.storage import FileStorage
from cli.status_display import build_status_table

logger = logging.getLogger(__name__)


def _storage_location(flow: CLIAuthFlow) -> str:
    storage = flow.kit.storage
    if isinstance(storage, FileStorage):
        return str(storage.path)
    return flow.kit.config.storage.value


async def _run(args: argparse.Namespace, flow: CLIAuthFlow) -> int:
    try:
        if args.command == "login":
            ok = await flow.authenticate(login_hint=args.login_hint, timeout=args.timeout)
            return 0 if ok else 1

        if args.command == "status":
            flow.console.print(build_status_table(flow.kit.auth, _storage_location(flow)))
            return 0

        if args.command == "token":
            return 0 if await flow.print_access_token() else 1

        if args.command == "logout":
            await flow.logout(revoke=not args.no_revoke)
            return 0

        return 2
    finally:
        await flow.kit.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appkit-auth",
        description="Sign in to an AppKit identity platform and manage stored tokens",
    )
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser("login", help="Sign in through the browser")
    login.add_argument("--login-hint", default=None, help="Pre-fill the username on the login page")
    login.add_argument("--timeout", type=float, default=settings.CALLBACK_TIMEOUT, help="Seconds to wait for the redirect")

    subparsers.add_parser("status", help="Show stored token status")
    subparsers.add_parser("token", help="Print a valid access token, refreshing if needed")

    logout = subparsers.add_parser("logout", help="Revoke and clear stored tokens")
    logout.add_argument("--no-revoke", action="store_true", help="Only clear local tokens")

    return parser


def main(argv=None) -> int:
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)

    debug_logger = configure_logging(debug=args.debug)
    console = create_debug_console(debug_enabled=args.debug, debug_logger=debug_logger)

    try:
        flow = CLIAuthFlow.from_env(console=console)
    except ConfigurationError as e:
        console.print(f"[red]ERROR:[/red] {e.message}")
        console.print("[dim]Set APPKIT_DOMAIN, APPKIT_CLIENT_ID and APPKIT_REDIRECT_URI (or use a .env file)[/dim]")
        return 2

    try:
        return asyncio.run(_run(args, flow))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
