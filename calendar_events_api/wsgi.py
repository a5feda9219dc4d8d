import os

from django.core.wsgi import get_wsgi_application


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "calendar_events_api.settings.local_base")

application = get_wsgi_application()
