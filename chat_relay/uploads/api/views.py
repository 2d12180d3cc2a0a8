from __future__ import annotations

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser
from rest_framework.parsers import MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from chat_relay.uploads.storage import BlobStore

logger = logging.getLogger(__name__)


class UploadView(APIView):
    """Accepts one file under ``file`` and returns its public URL.

    Clients send the URL over the socket as an image payload.
    """

    permission_classes = [AllowAny]
    parser_classes = [MultiPartParser, FormParser]
    blob_store_class = BlobStore

    @extend_schema(
        tags=["Uploads"],
        request={
            "multipart/form-data": {
                "type": "object",
                "properties": {"file": {"type": "string", "format": "binary"}},
                "required": ["file"],
            }
        },
        responses={200: {"type": "object"}},
    )
    def post(self, request):
        upload = request.FILES.get("file")
        if not upload:
            return Response(
                {"success": False, "msg": "No file"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        mime_type = upload.content_type or "application/octet-stream"
        try:
            url = self.blob_store_class().store(upload.read(), mime_type)
        except OSError as exc:
            logger.exception("Upload error")
            return Response(
                {"success": False, "msg": "Upload error", "err": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({"success": True, "url": request.build_absolute_uri(url)})
