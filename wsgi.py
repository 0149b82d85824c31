"""
WSGI / Flask-Migrate entry points.

    gunicorn "wsgi:api"     # REST API
    gunicorn "wsgi:web"     # web front-end

Migrations run against either app (they share the models):
    FLASK_APP=wsgi:api flask db upgrade
"""

from surveys import create_api_app, create_web_app

api = create_api_app()
web = create_web_app()

app = api
