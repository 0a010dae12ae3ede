# wsgi.py
"""
WSGI entrypoint for the worktime service.

Gunicorn on Render should point to: wsgi:app
"""

from worktime_app import create_app

# WSGI application object used by gunicorn
app = create_app()
