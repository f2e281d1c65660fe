"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi db migrate -m "description"
    flask --app wsgi seed-provinces
"""

from tracker import create_app

app = create_app()
