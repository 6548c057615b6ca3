"""
wsgi.py — Entry point for WSGI servers and the `flask` CLI.

    gunicorn "backend.wsgi:app"
    flask --app backend.wsgi reconcile-balances

The configuration is chosen by APP_ENV (development, testing, production).
"""

from backend.app import create_app

app = create_app()
