from .base import *  # noqa: F403
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#debug
DEBUG = True
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="k8Jd2sLq0WmZr5TnVb7Xc1Hf4Gy9Ep3Ua6Oi2Nw8QzRt5Lm",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#allowed-hosts
ALLOWED_HOSTS = ["localhost", "0.0.0.0", "127.0.0.1"]  # noqa: S104


# Your stuff...
# ------------------------------------------------------------------------------
CHAT_ADMIN_TOKEN = env("CHAT_ADMIN_TOKEN", default="local-admin-token")
