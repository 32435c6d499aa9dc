"""Flask configuration."""
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()

#################### General config for app ####################
PORT = os.environ.get('PORT')
"""Port the development server listens on; see ``app.py``."""

DOMAIN = os.environ.get('DOMAIN', 'http://localhost')
"""Public scheme and host of the app, used to build OAuth callback URLs."""

if PORT:
    OAUTH_CALLBACK_BASE_URL = f'{DOMAIN}:{PORT}'
else:
    OAUTH_CALLBACK_BASE_URL = 'http://localhost:3000'
"""Callbacks are ``{OAUTH_CALLBACK_BASE_URL}/auth/<provider>/diaries``.

These must match the redirect URIs registered with each provider."""

DIARIES_REQUIRE_AUTH = bool(int(os.environ.get('DIARIES_REQUIRE_AUTH', '0')))
"""If set, anonymous users are sent to the login page from ``/diaries``."""

DIARY_TIMEZONE = os.environ.get('DIARY_TIMEZONE')
"""Time zone name used to decide what "today" is. Server local if unset."""


#################### Database ####################
DB_USER = os.environ.get('DB_USER')
DB_PWD = os.environ.get('DB_PWD', '')
DB_HOST = os.environ.get('DB_HOST', 'localhost')
DB_NAME = os.environ.get('DB_NAME', 'diary-we-write')

if os.environ.get('SQLALCHEMY_DATABASE_URI'):
    SQLALCHEMY_DATABASE_URI = os.environ['SQLALCHEMY_DATABASE_URI']
elif DB_USER:
    SQLALCHEMY_DATABASE_URI = \
        f'mysql://{quote_plus(DB_USER)}:{quote_plus(DB_PWD)}@{DB_HOST}/{DB_NAME}'
else:
    SQLALCHEMY_DATABASE_URI = 'sqlite:///diary-we-write.db'
"""Local sqlite file for development, unless database credentials are set."""

SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', '0')))


#################### Sessions ####################
SECRET_KEY = os.environ.get('SESSION_SECRET')
"""Sets the `Flask` secret key, used for the OAuth handshake state.

Must be shared by every worker. If unset, the app factory generates one for
the process and logs a warning."""

JWT_SECRET = os.environ.get('JWT_SECRET')
"""Signs session cookies and session records. Defaults to `SECRET_KEY`."""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_TOKEN = os.environ.get('REDIS_TOKEN', None)
"""This is the token used in the AUTH procedure."""

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the FakeRedis library instead of a redis service.

Useful for testing, dev."""

SESSION_DURATION = os.environ.get('SESSION_DURATION', '36000')

AUTH_SESSION_COOKIE_NAME = 'DIARY_SESSION_ID'
AUTH_SESSION_COOKIE_DOMAIN = os.environ.get('AUTH_SESSION_COOKIE_DOMAIN')
AUTH_SESSION_COOKIE_SECURE = \
    bool(int(os.environ.get('AUTH_SESSION_COOKIE_SECURE', '0')))


#################### Identity providers ####################
GOOGLE_CLIENT_ID = os.environ.get('GOOGLE_CLIENT_ID')
GOOGLE_CLIENT_SECRET = os.environ.get('GOOGLE_CLIENT_SECRET')

FACEBOOK_APP_ID = os.environ.get('FACEBOOK_APP_ID')
FACEBOOK_APP_SECRET = os.environ.get('FACEBOOK_APP_SECRET')


#################### Minor configs ##############################
LOGLEVEL = int(os.environ.get('LOGLEVEL', 20))

AUTH_DEBUG = bool(int(os.environ.get('AUTH_DEBUG', '0')))
