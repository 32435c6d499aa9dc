"""Application factory for the diary app."""

from typing import Any, Mapping, Optional
import logging
import secrets

from flask import Flask, Response, make_response, render_template
from werkzeug.exceptions import HTTPException, InternalServerError, \
    MethodNotAllowed, NotFound

from .auth import Auth
from .routes import ui
from .services import providers, sessions, users

logger = logging.getLogger(__name__)


def create_web_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Initialize and configure the diary application.

    Parameters
    ----------
    config : mapping
        Overrides for the settings in :mod:`diarywewrite.config`. All
        per-process state (database binding, session store, OAuth clients)
        is built from the resulting configuration.

    """
    app = Flask('diarywewrite')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)
    ensure_secrets(app)

    users.init_app(app)
    sessions.init_app(app)
    providers.init_app(app)

    Auth(app)    # Attaches the session, if any, to each request.
    app.register_blueprint(ui.blueprint)
    register_error_handlers(app)

    if app.config['CREATE_DB']:
        with app.app_context():
            users.create_all()

    return app


def ensure_secrets(app: Flask) -> None:
    """
    Make sure the app has a secret key and a session-signing secret.

    Without `SESSION_SECRET` the key is random for this process, so sessions
    and OAuth handshakes started in another worker, or before a restart,
    will not validate here.
    """
    if not app.config.get('SECRET_KEY'):
        logger.warning('SESSION_SECRET is not set; using a per-process secret')
        app.config['SECRET_KEY'] = secrets.token_urlsafe(32)
    if not app.config.get('JWT_SECRET'):
        app.config['JWT_SECRET'] = app.config['SECRET_KEY']


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(NotFound)(render_exception)
    app.errorhandler(MethodNotAllowed)(render_exception)
    app.errorhandler(InternalServerError)(render_exception)


def render_exception(error: HTTPException) -> Response:
    """Render exceptions as a plain error page."""
    exc_resp = error.get_response()
    if exc_resp.status_code >= 500:
        original = getattr(error, 'original_exception', None) \
            or error.__cause__
        logger.error('Server error: %s', error.description, exc_info=original)
    content = render_template('diarywewrite/error.html',
                              code=exc_resp.status_code,
                              description=error.description)
    return make_response(content, exc_resp.status_code)
