"""
WSGI config for poultry_trade project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'poultry_trade.settings.local')

application = get_wsgi_application()
