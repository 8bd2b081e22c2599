"""
WSGI config for the skillshare project.
"""
import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'skillshare.settings')
application = get_wsgi_application()
