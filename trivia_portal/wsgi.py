"""WSGI config for the trivia portal."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "trivia_portal.settings")

application = get_wsgi_application()
