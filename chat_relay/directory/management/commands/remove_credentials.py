from __future__ import annotations

from django.core.management.base import BaseCommand
from django.core.management.base import CommandError
from django.core.management.base import CommandParser
from django.db import transaction

from chat_relay.directory.exceptions import DirectoryUnavailable
from chat_relay.directory.services import CredentialDirectory
from chat_relay.realtime.events.presence import publish_presence_counts
from chat_relay.realtime.notices import PresenceNotices


class Command(BaseCommand):
    help = "Delete registered chat users by username and rebroadcast user counts"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("usernames", nargs="+", help="Usernames to remove")
        parser.add_argument(
            "--no-broadcast",
            action="store_true",
            dest="no_broadcast",
            help="Skip pushing refreshed user counts to connected clients",
        )

    def handle(self, *args, **options) -> str | None:
        usernames: list[str] = options["usernames"]
        try:
            with transaction.atomic():
                removed = CredentialDirectory().remove(usernames)
        except DirectoryUnavailable as exc:
            raise CommandError(str(exc)) from exc

        if removed and not options.get("no_broadcast"):
            # This process holds no connections; only Redis reaches the chat servers.
            if PresenceNotices.from_settings() is None:
                self.stderr.write(
                    "REDIS_URL is not set; running chat servers were not notified",
                )
            else:
                publish_presence_counts()

        self.stdout.write(f"{removed} users deleted")
        return None
