"""
ASGI config for the membership site.

The site is plain HTTP, so this is Django's ASGI handler without any
protocol routing. Useful when serving with Uvicorn.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
