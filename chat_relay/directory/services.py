"""Credential directory: username -> credential hash records.

The directory never derives or inspects hashes. ``register`` checks for an
existing username before inserting, but the unique constraint on
``Credential.username`` is what actually decides a concurrent race; the
losing insert surfaces as ``DuplicateUsername`` just like the early check.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from django.db import DatabaseError
from django.db import IntegrityError
from django.db import transaction

from .exceptions import DirectoryUnavailable
from .exceptions import DuplicateUsername
from .exceptions import InvalidCredential
from .models import Credential

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable
    from datetime import datetime

logger = logging.getLogger(__name__)


class CredentialDirectory:
    def register(self, username: str, credential_hash: str) -> Credential:
        try:
            if Credential.objects.filter(username=username).exists():
                raise DuplicateUsername(username)
            with transaction.atomic():
                return Credential.objects.create(
                    username=username,
                    credential_hash=credential_hash,
                )
        except IntegrityError as exc:
            # Lost the race against a concurrent insert of the same username.
            logger.info("Duplicate username rejected at insert: %s", username)
            raise DuplicateUsername(username) from exc
        except DatabaseError as exc:
            raise DirectoryUnavailable(str(exc)) from exc

    def authenticate(self, username: str, credential_hash: str) -> Credential:
        try:
            record = Credential.objects.filter(
                username=username,
                credential_hash=credential_hash,
            ).first()
        except DatabaseError as exc:
            raise DirectoryUnavailable(str(exc)) from exc
        if record is None:
            raise InvalidCredential
        return record

    def count(self) -> int:
        try:
            return Credential.objects.count()
        except DatabaseError as exc:
            raise DirectoryUnavailable(str(exc)) from exc

    def remove(self, usernames: Iterable[str]) -> int:
        """Delete the named records and return how many actually existed."""

        names = {name for name in usernames if isinstance(name, str)}
        if not names:
            return 0
        try:
            deleted, _ = Credential.objects.filter(username__in=names).delete()
        except DatabaseError as exc:
            raise DirectoryUnavailable(str(exc)) from exc
        return deleted

    def list_records(self) -> list[tuple[str, datetime]]:
        try:
            return list(
                Credential.objects.order_by("created_at", "id").values_list(
                    "username", "created_at"
                )
            )
        except DatabaseError as exc:
            raise DirectoryUnavailable(str(exc)) from exc

    # Async entry points for Socket.IO handlers.

    async def aregister(self, username: str, credential_hash: str) -> Credential:
        return await database_sync_to_async(self.register)(username, credential_hash)

    async def aauthenticate(self, username: str, credential_hash: str) -> Credential:
        return await database_sync_to_async(self.authenticate)(
            username, credential_hash
        )

    async def acount(self) -> int:
        return await database_sync_to_async(self.count)()

    async def aremove(self, usernames: Iterable[str]) -> int:
        return await database_sync_to_async(self.remove)(list(usernames))
