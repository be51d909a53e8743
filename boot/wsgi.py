"""
WSGI config for Logdrop.

Exposes the WSGI callable as a module-level variable named ``application``.
Environment variables are read from a .env file when present.
"""

import os

from dotenv import load_dotenv

load_dotenv()

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "boot.settings")
os.environ.setdefault("DJANGO_CONFIGURATION", "Production")

from configurations.wsgi import get_wsgi_application

application = get_wsgi_application()
