import hmac

from django.conf import settings
from rest_framework.permissions import BasePermission

ADMIN_TOKEN_HEADER = "HTTP_X_ADMIN_TOKEN"


class HasAdminToken(BasePermission):
    """Allow access only with the shared ``X-Admin-Token`` secret.

    An empty ``CHAT_ADMIN_TOKEN`` refuses everyone.
    """

    message = "Admin token required."

    def has_permission(self, request, view):
        expected = getattr(settings, "CHAT_ADMIN_TOKEN", "")
        supplied = request.META.get(ADMIN_TOKEN_HEADER, "")
        if not expected or not supplied:
            return False
        return hmac.compare_digest(str(supplied), str(expected))
