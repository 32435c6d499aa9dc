"""Web Server Gateway Interface entry-point."""

from diarywewrite.app_logging import setup_logger
from diarywewrite.factory import create_web_app
import os

__flask_app__ = None


def application(environ, start_response):    # type: ignore
    """WSGI application."""
    global __flask_app__
    for key, value in environ.items():
        # SERVER_NAME from the container is a host ID, not our public name.
        if key == 'SERVER_NAME':
            continue
        if isinstance(value, str):
            os.environ[key] = value
    if __flask_app__ is None:
        __flask_app__ = create_web_app()
        setup_logger(__flask_app__.config['LOGLEVEL'])
    return __flask_app__(environ, start_response)
