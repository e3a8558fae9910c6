"""Status display functionality for CLI"""

from datetime import datetime
from typing import Optional

from rich.table import Table

from oauth import AuthManager, TokenSet


def format_time_until_expiry(tokens: Optional[TokenSet]) -> str:
    """Human readable remaining lifetime, e.g. "1h 5m" or "3m ago" """
    if tokens is None:
        return "No tokens"

    remaining = int(tokens.expires_in())
    if remaining <= 0:
        elapsed = -remaining
        hours, minutes = elapsed // 3600, (elapsed % 3600) // 60
        return f"{hours}h {minutes}m ago" if hours > 0 else f"{minutes}m ago"

    hours, minutes = remaining // 3600, (remaining % 3600) // 60
    days = hours // 24
    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def build_status_table(auth: AuthManager, location: str) -> Table:
    """
    Build the token status table without exposing secrets

    Args:
        auth: AuthManager of the client
        location: Where credentials are stored, for display

    Returns:
        Rich table ready to print
    """
    tokens = auth.get_tokens()

    table = Table(title="Authentication Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("State", auth.state.value)
    table.add_row("Has Tokens", "Yes" if tokens else "No")
    table.add_row("Is Expired", "No" if auth.is_authenticated() else "Yes")

    if tokens:
        table.add_row("Expires At", datetime.fromtimestamp(tokens.expires_at).isoformat(timespec="seconds"))
        table.add_row("Time Until Expiry", format_time_until_expiry(tokens))
        table.add_row("Refresh Token", "Yes" if tokens.refresh_token else "No")
        table.add_row("Scope", tokens.scope or "-")

    table.add_row("Storage", location)
    return table
