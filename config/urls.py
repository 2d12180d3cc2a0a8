from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.contrib.staticfiles.urls import staticfiles_urlpatterns
from django.urls import include
from django.urls import path
from drf_spectacular.views import SpectacularAPIView
from drf_spectacular.views import SpectacularSwaggerView

from .health import health as health_view

urlpatterns = [
    # Django Admin, use {% url 'admin:index' %}
    path(settings.ADMIN_URL, admin.site.urls),
    path("health/", health_view, name="health"),
    # Media files
    *static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT),
]
if settings.DEBUG:
    # Static file serving when using Uvicorn for local web socket development
    urlpatterns += staticfiles_urlpatterns()

# Chat HTTP surface. Paths mirror what existing chat clients already call.
urlpatterns += [
    path(
        "",
        include(("chat_relay.directory.api.urls", "directory"), namespace="directory"),
    ),
    path(
        "",
        include(("chat_relay.uploads.api.urls", "uploads"), namespace="uploads"),
    ),
    path("api/schema/", SpectacularAPIView.as_view(), name="api-schema"),
    path(
        "api/docs/",
        SpectacularSwaggerView.as_view(url_name="api-schema"),
        name="api-docs",
    ),
]
