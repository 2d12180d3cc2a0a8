from django.db import models
from django.utils.translation import gettext_lazy as _


class Credential(models.Model):
    """A registered chat user.

    ``credential_hash`` is computed by the client from the username and secret;
    the server stores and compares it verbatim.
    """

    username = models.CharField(_("Username"), max_length=150, unique=True)
    credential_hash = models.CharField(_("Credential hash"), max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = _("Credential")
        verbose_name_plural = _("Credentials")

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.username
