#!/usr/bin/env python3
"""
Manual badge award command line.

Award and revoke badges, and list existing or potential recipients, against
the configured MongoDB database.
"""

import argparse
import asyncio
import sys

from motor.motor_asyncio import AsyncIOMotorClient
from rich.console import Console
from rich.table import Table

from badge_awards.aws.event_sink import build_event_sink
from badge_awards.config import Settings, configure_logging
from badge_awards.core.award_manager import AwardManager
from badge_awards.core.recipient_selector import RecipientSelector
from badge_awards.exceptions import AwardNotFoundError, DBError
from badge_awards.models import RecipientQuery, SearchMode, TooManyResults

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manual badge awards")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    for name, help_text in (("award", "Award a badge"), ("revoke", "Revoke a manually awarded badge")):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("badge_id", help="Badge ID")
        command.add_argument("recipient_id", help="Recipient user ID")
        command.add_argument("--issuer", required=True, help="Issuer user ID")
        command.add_argument("--role", required=True, help="Issuer role ID")

    for name, help_text in (("existing", "List existing recipients"), ("potential", "List potential recipients")):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("badge_id", help="Badge ID")
        command.add_argument("--role", required=True, help="Issuer role ID")
        command.add_argument("--search", default="", help="Search text")
        command.add_argument("--group", help="Only members of this group")
        if name == "potential":
            command.add_argument("--exclude", nargs="*", default=[], help="User IDs to leave out")

    subparsers.add_parser("init-indexes", help="Create award collection indexes")
    return parser


def render_recipients(result):
    if isinstance(result, TooManyResults):
        console.print(f"[yellow]Too many users ({result.count}) match '{result.search}', refine your search[/yellow]")
        return

    if not result:
        console.print("[dim]No users found[/dim]")
        return

    for label, users in result.items():
        table = Table(title=f"{label} ({len(users)})")
        table.add_column("ID")
        table.add_column("Name")
        table.add_column("Email")
        for user in users:
            table.add_row(str(user["id"]), f"{user['firstname']} {user['lastname']}", user["email"])
        console.print(table)


async def run(args, settings: Settings) -> int:
    client = AsyncIOMotorClient(settings.mongo_uri)
    db = client[settings.db_name]

    try:
        manager = AwardManager(
            shared_db_client=client,
            shared_db=db,
            event_sink=build_event_sink(settings.events_queue_url, settings.aws_region)
        )

        if args.command == "init-indexes":
            await manager.ensure_indexes()
            console.print("✅ Indexes created")

        elif args.command == "award":
            if await manager.award(args.recipient_id, args.issuer, args.role, args.badge_id):
                console.print(f"🏅 Awarded {args.badge_id} to {args.recipient_id}")
            else:
                console.print(f"ℹ️  {args.recipient_id} already holds this award")

        elif args.command == "revoke":
            revoked = await manager.revoke(args.recipient_id, args.issuer, args.role, args.badge_id)
            console.print(f"🚫 Revoked {args.badge_id} from {args.recipient_id}" if revoked else "⚠️  Nothing revoked")

        else:
            selector = RecipientSelector(db)
            query = RecipientQuery(
                badge_id=args.badge_id,
                issuer_role=args.role,
                search=args.search,
                group_id=args.group,
                excluded_ids=frozenset(getattr(args, "exclude", []))
            )
            if args.command == "existing":
                render_recipients(await selector.find_existing(query))
            else:
                render_recipients(await selector.find_potential(query, SearchMode.RENDER))

        return 0

    except AwardNotFoundError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        return 1
    except DBError as e:
        e.log_db_error()
        return 1
    finally:
        client.close()


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    configure_logging(settings.log_level)
    sys.exit(asyncio.run(run(args, settings)))


if __name__ == "__main__":
    main()
