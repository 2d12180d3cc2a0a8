from django.contrib import admin

from chat_relay.directory import models


@admin.register(models.Credential)
class CredentialAdmin(admin.ModelAdmin):
    list_display = ["id", "username", "created_at"]
    search_fields = ["username"]
    list_filter = ["created_at"]
    readonly_fields = ["username", "credential_hash", "created_at"]
