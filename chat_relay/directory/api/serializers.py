from __future__ import annotations

from typing import Any

from rest_framework import serializers


class CredentialInputSerializer(serializers.Serializer):
    """Body of /signup and /signin.

    ``final_hash`` is the client-side reduction of username + secret.
    """

    username = serializers.CharField(max_length=150, trim_whitespace=False)
    final_hash = serializers.CharField(max_length=255, trim_whitespace=False)


class CredentialRecordSerializer(serializers.Serializer):
    username = serializers.CharField(read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815


class DeleteUsersSerializer(serializers.Serializer):
    usernames = serializers.ListField(
        child=serializers.CharField(allow_blank=False, trim_whitespace=False),
        allow_empty=False,
    )

    def validate_usernames(self, value: list[Any]) -> list[str]:
        return list(dict.fromkeys(value))
