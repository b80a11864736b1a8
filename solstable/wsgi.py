"""WSGI entrypoint for the SolStable dashboard."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "solstable.settings")

application = get_wsgi_application()
