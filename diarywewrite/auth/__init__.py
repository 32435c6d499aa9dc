"""Provides tools for working with authenticated user sessions."""

from typing import Optional
import logging

from flask import Flask, current_app, request

from .. import domain
from ..services import sessions
from ..services.exceptions import InvalidToken, UnknownSession

from . import decorators

logger = logging.getLogger(__name__)


class Auth(object):
    """
    Attaches session information to the request.

    Set `Flask.config` `AUTH_DEBUG` to True (env var ``AUTH_DEBUG=1``) to get
    additional debugging in the logs.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from diarywewrite.auth import Auth
       from diarywewrite.routes import ui


       def create_web_app() -> Flask:
          app = Flask('diarywewrite')
          app.config.from_pyfile('config.py')
          Auth(app)   # Registers the before_request auth check
          app.register_blueprint(ui.blueprint)
          return app

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        """Initialize ``app`` with `Auth`."""
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Attach :meth:`.load_session` to the Flask app."""
        self.app = app
        app.config.setdefault('AUTH_SESSION_COOKIE_NAME', 'DIARY_SESSION_ID')
        app.before_request(self.load_session)
        if app.config.get('AUTH_DEBUG'):
            self.auth_debug()
            logger.debug('AUTH_DEBUG is set; auth debug logging is on')

    def load_session(self) -> None:
        """
        Look for an active session, and attach it to the request.

        The session, or ``None`` if the request is anonymous, is available
        as ``request.auth``.
        """
        cookie_name = current_app.config['AUTH_SESSION_COOKIE_NAME']
        request.auth = self._get_session(request.cookies.get(cookie_name))

    def _get_session(self, cookie: Optional[str]) -> Optional[domain.Session]:
        if not cookie:
            return None
        try:
            return sessions.load(cookie)
        except InvalidToken as e:
            logger.debug('Invalid session cookie: %s', e)
        except UnknownSession as e:
            logger.debug('No session available: %s', e)
        return None

    def auth_debug(self) -> None:
        """Sets the auth loggers to DEBUG."""
        logger.setLevel(logging.DEBUG)
        decorators.logger.setLevel(logging.DEBUG)
        sessions.logger.setLevel(logging.DEBUG)
