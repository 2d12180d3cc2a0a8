from __future__ import annotations

import logging

from django.db import transaction
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from chat_relay.directory.exceptions import DirectoryUnavailable
from chat_relay.directory.exceptions import DuplicateUsername
from chat_relay.directory.exceptions import InvalidCredential
from chat_relay.directory.services import CredentialDirectory
from chat_relay.realtime.events.presence import publish_presence_counts

from .permissions import HasAdminToken
from .serializers import CredentialInputSerializer
from .serializers import CredentialRecordSerializer
from .serializers import DeleteUsersSerializer

logger = logging.getLogger(__name__)

directory = CredentialDirectory()


def _failure(msg: str, http_status: int, **extra) -> Response:
    return Response({"success": False, "msg": msg, **extra}, status=http_status)


class SignupView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        tags=["Auth"],
        request=CredentialInputSerializer,
        responses={200: {"type": "object"}, 409: {"type": "object"}},
    )
    def post(self, request):
        serializer = CredentialInputSerializer(data=request.data)
        if not serializer.is_valid():
            return _failure("Missing username or hash", status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            directory.register(data["username"], data["final_hash"])
        except DuplicateUsername:
            return _failure("Username already exists", status.HTTP_409_CONFLICT)
        except DirectoryUnavailable as exc:
            logger.exception("Signup failed")
            return _failure(
                "Signup failed",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error=str(exc),
            )

        transaction.on_commit(publish_presence_counts)
        return Response({"success": True, "msg": "User created"})


class SigninView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        tags=["Auth"],
        request=CredentialInputSerializer,
        responses={200: {"type": "object"}, 401: {"type": "object"}},
    )
    def post(self, request):
        serializer = CredentialInputSerializer(data=request.data)
        if not serializer.is_valid():
            return _failure("Missing username or hash", status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            record = directory.authenticate(data["username"], data["final_hash"])
        except InvalidCredential:
            return _failure(
                "Invalid username or password",
                status.HTTP_401_UNAUTHORIZED,
            )
        except DirectoryUnavailable as exc:
            logger.exception("Signin failed")
            return _failure(
                "Signin failed",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error=str(exc),
            )

        return Response(
            {"success": True, "msg": "Signed in", "username": record.username}
        )


class AdminUserListView(APIView):
    permission_classes = [HasAdminToken]

    @extend_schema(tags=["Admin"], responses=CredentialRecordSerializer(many=True))
    def get(self, request):
        try:
            rows = directory.list_records()
        except DirectoryUnavailable as exc:
            logger.exception("User list error")
            return _failure(
                "Failed to fetch user list",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error=str(exc),
            )
        records = [
            {"username": username, "created_at": created_at}
            for username, created_at in rows
        ]
        return Response(CredentialRecordSerializer(records, many=True).data)


class AdminDeleteUsersView(APIView):
    permission_classes = [HasAdminToken]

    @extend_schema(
        tags=["Admin"],
        request=DeleteUsersSerializer,
        responses={200: {"type": "object"}, 404: {"type": "object"}},
    )
    def post(self, request):
        serializer = DeleteUsersSerializer(data=request.data)
        if not serializer.is_valid():
            return _failure(
                "Missing or invalid list of usernames",
                status.HTTP_400_BAD_REQUEST,
            )

        try:
            deleted = directory.remove(serializer.validated_data["usernames"])
        except DirectoryUnavailable as exc:
            logger.exception("User delete error")
            return _failure(
                "User deletion failed",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error=str(exc),
            )

        if deleted == 0:
            return _failure("No users found or deleted", status.HTTP_404_NOT_FOUND)

        transaction.on_commit(publish_presence_counts)
        return Response(
            {
                "success": True,
                "msg": f"{deleted} users deleted successfully",
                "deleted": deleted,
            }
        )
