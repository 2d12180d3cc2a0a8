"""Blob store used by the upload endpoint: store bytes, get back a URL."""

from __future__ import annotations

import mimetypes
import uuid

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import Storage
from django.core.files.storage import default_storage
from django.utils import timezone


class BlobStore:
    def __init__(self, storage: Storage | None = None, folder: str | None = None):
        self.storage = storage or default_storage
        self.folder = (folder or settings.CHAT_UPLOAD_FOLDER).strip("/")

    def build_name(self, mime_type: str) -> str:
        extension = mimetypes.guess_extension(mime_type or "") or ""
        timestamp = timezone.now().strftime("%Y%m%dT%H%M%S")
        return f"{self.folder}/{timestamp}_{uuid.uuid4().hex}{extension}"

    def store(self, data: bytes, mime_type: str) -> str:
        """Persist ``data`` and return the public URL of the stored blob."""

        name = self.storage.save(self.build_name(mime_type), ContentFile(data))
        return self.storage.url(name)
