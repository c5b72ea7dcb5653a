"""ASGI config for the trivia portal."""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "trivia_portal.settings")

application = get_asgi_application()
