"""
WSGI config for the IPD portal project.

Serves the HTTP API only.  The chat socket hub (``/hubs/chat``) needs
the ASGI application in ``portal.asgi``; run that under daphne when
realtime delivery is wanted.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'portal.settings')

application = get_wsgi_application()
