"""CLI for gcal-auth - Google Calendar access from the terminal.

Usage:
    gcal-auth                                   # Authorize, then list calendars
    gcal-auth login [--no-browser]              # Interactive OAuth login
    gcal-auth status                            # Show credential and token status
    gcal-auth calendars                         # List calendars
    gcal-auth events --start ISO --end ISO      # List events in a time window
    gcal-auth logout                            # Delete the stored token

Global options:
    --credentials PATH   OAuth client credentials (default: google_credentials.json)
    --token PATH         Token file (default: token.json)
    -v, --verbose        Log progress to stderr
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone

from gcal_auth.calendar import CalendarClient
from gcal_auth.config import StorePaths, get_credential_status
from gcal_auth.google import (
    AuthorizationFlow,
    AuthorizedClient,
    ConfigMalformedError,
    ConfigNotFoundError,
    ConsolePrompter,
    CredentialStore,
    PersistenceError,
    TokenExchangeError,
)


def _authorize(store: CredentialStore, open_browser: bool = False) -> AuthorizedClient | None:
    """Run the authorization flow, printing any failure."""
    flow = AuthorizationFlow(store, prompter=ConsolePrompter(open_browser=open_browser))
    try:
        client = flow.authorize()
    except (ConfigNotFoundError, ConfigMalformedError) as e:
        print(f"Error: {e}")
        print(f"Save OAuth client credentials to {store.config_path}")
        return None
    except TokenExchangeError as e:
        print(f"Error during authentication: {e}")
        return None

    if client.persistence_error is not None:
        print(f"Warning: {client.persistence_error}")
        print("The token will be requested again next time.")

    return client


def cmd_login(store: CredentialStore, no_browser: bool = False) -> int:
    """Interactive Google OAuth login."""
    print("=" * 60)
    print("GCAL-AUTH GOOGLE LOGIN")
    print("=" * 60)
    print()

    client = _authorize(store, open_browser=not no_browser)
    if client is None:
        return 1

    print("Successfully authenticated with Google Calendar API!")
    return 0


def cmd_status(store: CredentialStore) -> int:
    """Show credential file and token status."""
    status = get_credential_status(store.paths)
    info = store.token_info()

    print("=" * 60)
    print("GCAL-AUTH CREDENTIAL STATUS")
    print("=" * 60)
    print()
    print(f"  .env:              {'[x]' if status['env_file'] else '[ ]'}")
    print(f"  credentials.json:  {'[x]' if status['credentials'] else '[ ]'}")
    print(f"    {status['credentials_path']}")
    print(f"  token.json:        {'[x]' if status['token'] else '[ ]'}")
    print(f"    {status['token_path']}")
    print()

    if info["status"] == "no_token":
        print("No token found - run 'gcal-auth login'")
        return 0

    print(f"Scopes        : {', '.join(info['scopes']) or 'unknown'}")
    print(f"Expires at    : {info['expires_at']}")
    print(f"Refresh token : {'yes' if info['has_refresh_token'] else 'no'}")
    return 0


def cmd_calendars(store: CredentialStore, announce: bool = False) -> int:
    """List the user's calendars."""
    auth = _authorize(store)
    if auth is None:
        return 1
    if announce:
        print("Successfully authenticated with Google Calendar API!")

    result = CalendarClient(auth).list_calendars()
    if not result.ok:
        print(f"Error fetching calendars: {result.error}")
        return 1

    if not result.items:
        print("No calendars found.")
        return 0

    print("\nCalendars:")
    for calendar in result.items:
        print(f"- {calendar.display_name} (ID: {calendar.id})")
    return 0


def cmd_events(store: CredentialStore, calendar_id: str, start: datetime, end: datetime) -> int:
    """List events between start and end."""
    if start >= end:
        print("Error: --start must be before --end")
        return 1

    auth = _authorize(store)
    if auth is None:
        return 1

    result = CalendarClient(auth).list_events(calendar_id, start, end)
    if not result.ok:
        print(f"Error fetching events: {result.error}")
        return 1

    if not result.items:
        print("\nNo events found in the specified date range.")
        return 0

    print(f"\nEvents from {start.date().isoformat()} to {end.date().isoformat()}:")
    for event in result.items:
        print(f"- {event.start}: {event.summary}")
    return 0


def cmd_logout(store: CredentialStore) -> int:
    """Delete the stored token."""
    try:
        removed = store.delete_token()
    except PersistenceError as e:
        print(f"Error: {e}")
        return 1

    print("Token deleted" if removed else "No token to delete")
    return 0


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 date or date-time. Values without an offset are UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid ISO date/time: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="gcal-auth",
        description="Authorize with Google Calendar and list calendars and events",
    )
    parser.add_argument("--credentials", type=str, help="Path to OAuth credentials file")
    parser.add_argument("--token", type=str, help="Path to token file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    # login
    login_parser = subparsers.add_parser("login", help="Interactive OAuth login")
    login_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )

    # status
    subparsers.add_parser("status", help="Show credential and token status")

    # calendars
    subparsers.add_parser("calendars", help="List calendars")

    # events
    events_parser = subparsers.add_parser("events", help="List events in a time window")
    events_parser.add_argument(
        "--calendar-id",
        type=str,
        default="primary",
        help="Calendar ID (default: primary)",
    )
    events_parser.add_argument("--start", type=parse_datetime, required=True, help="Window start")
    events_parser.add_argument("--end", type=parse_datetime, required=True, help="Window end")

    # logout
    subparsers.add_parser("logout", help="Delete the stored token")

    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    store = CredentialStore(StorePaths.from_env(args.credentials, args.token))

    if args.command is None:
        return cmd_calendars(store, announce=True)

    if args.command == "login":
        return cmd_login(store, args.no_browser)

    if args.command == "status":
        return cmd_status(store)

    if args.command == "calendars":
        return cmd_calendars(store)

    if args.command == "events":
        return cmd_events(store, args.calendar_id, args.start, args.end)

    if args.command == "logout":
        return cmd_logout(store)

    return 0


if __name__ == "__main__":
    sys.exit(main())
