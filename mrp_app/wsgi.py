"""
WSGI config for the mrp_app project.

It exposes the WSGI callable as a module-level variable named ``application``.

For more information on this file, see
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.management import call_command
from django.core.wsgi import get_wsgi_application
from django.db.utils import OperationalError

from mrp_app.logging import configure_logging, get_logger

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "mrp_app.settings")
configure_logging()

application = get_wsgi_application()

try:
    call_command("migrate", interactive=False)
except OperationalError as exc:
    # Database may be unavailable when the server starts; continue without failing.
    get_logger(__name__).warning("Skipping startup migrations: %s", exc)
