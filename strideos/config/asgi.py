"""
ASGI config for the StrideOS backend.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'strideos.config.settings')

application = get_asgi_application()
