"""
Internal service API for the distributed session store.

Sessions are kept in Redis, keyed by session ID. The browser holds a signed
JWT cookie carrying the session ID, the user ID, a nonce and the expiry; the
nonce and user ID are checked against the stored session on every load.
"""

from typing import Optional, Union
from datetime import datetime, timedelta
from functools import wraps
import logging
import random
import uuid

import dateutil.parser
import fakeredis
import jwt
import redis
from flask import Flask, current_app
from pytz import UTC

from ... import domain
from ..exceptions import SessionCreationFailed, SessionDeletionFailed, \
    UnknownSession, InvalidToken

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'diarywewrite.sessions'


def _generate_nonce(length: int = 8) -> str:
    return ''.join([str(random.randint(0, 9)) for i in range(length)])


class SessionStore(object):
    """
    Manages a connection to Redis.

    In fact, the StrictRedis instance is thread safe and connections are
    attached at the time a command is executed. This class simply provides a
    container for configuration.
    """

    def __init__(self, host: str, port: int, db: int, secret: str,
                 duration: int = 36000, token: Optional[str] = None,
                 fake: bool = False) -> None:
        """Open the connection to Redis."""
        if fake:
            logger.debug('Using fake Redis for sessions')
            self.r = fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
        else:
            logger.debug('New Redis connection at %s, port %s', host, port)
            self.r = redis.StrictRedis(host=host, port=port, db=db,
                                       password=token)
        self._secret = secret
        self._duration = duration

    def create(self, user: domain.User, ip_address: Optional[str],
               remote_host: Optional[str]) -> domain.Session:
        """
        Create a new session for ``user``.

        Parameters
        ----------
        user : :class:`domain.User`
        ip_address : str
        remote_host : str

        Returns
        -------
        :class:`.Session`
        """
        session_id = str(uuid.uuid4())
        start_time = datetime.now(tz=UTC)
        end_time = start_time + timedelta(seconds=self._duration)
        session = domain.Session(
            session_id=session_id,
            user_id=user.user_id,
            start_time=start_time,
            end_time=end_time,
            nonce=_generate_nonce(),
            ip_address=ip_address,
            remote_host=remote_host
        )
        try:
            self.r.set(session_id, self._encode(session.to_dict()),
                       ex=self._duration)
        except redis.exceptions.ConnectionError as e:
            raise SessionCreationFailed(f'Connection failed: {e}') from e
        except Exception as e:
            raise SessionCreationFailed(f'Failed to create: {e}') from e
        return session

    def generate_cookie(self, session: domain.Session) -> str:
        """Generate a cookie from a :class:`domain.Session`."""
        return self._pack_cookie({
            'user_id': session.user_id,
            'session_id': session.session_id,
            'nonce': session.nonce,
            'expires': session.end_time.isoformat()
        })

    def delete(self, cookie: str) -> None:
        """Delete the session referenced by a session cookie."""
        try:
            cookie_data = self._unpack_cookie(cookie)
        except InvalidToken as e:
            raise SessionDeletionFailed('Bad session token') from e
        self.delete_by_id(cookie_data['session_id'])

    def delete_by_id(self, session_id: str) -> None:
        """Delete a session in the key-value store by ID."""
        try:
            self.r.delete(session_id)
        except redis.exceptions.ConnectionError as e:
            raise SessionDeletionFailed(f'Connection failed: {e}') from e
        except Exception as e:
            raise SessionDeletionFailed(f'Failed to delete: {e}') from e

    def load(self, cookie: str) -> domain.Session:
        """
        Load a session using a session cookie.

        Raises
        ------
        :class:`.InvalidToken`
            The cookie is malformed, expired, or does not match the session.
        :class:`.UnknownSession`
            There is no such session in the store.

        """
        cookie_data = self._unpack_cookie(cookie)
        try:
            expires = dateutil.parser.parse(cookie_data['expires'])
            session_id = cookie_data['session_id']
        except (KeyError, ValueError, OverflowError) as e:
            raise InvalidToken('Token payload malformed') from e
        if expires <= datetime.now(tz=UTC):
            raise InvalidToken('Session has expired')

        session = self.load_by_id(session_id)
        if session.expired:
            raise InvalidToken('Session has expired')
        if cookie_data.get('nonce') != session.nonce \
                or cookie_data.get('user_id') != session.user_id:
            raise InvalidToken('Invalid token; likely a forgery')
        return session

    def load_by_id(self, session_id: str) -> domain.Session:
        """Get session data by session ID."""
        try:
            session_jwt: Union[str, bytes, None] = self.r.get(session_id)
        except redis.exceptions.ConnectionError as e:
            logger.error('Could not reach session store: %s', e)
            raise UnknownSession(f'Connection failed: {e}') from e
        if not session_jwt:
            logger.debug('No such session: %s', session_id)
            raise UnknownSession(f'Failed to find session {session_id}')
        if isinstance(session_jwt, bytes):
            session_jwt = session_jwt.decode('utf-8')
        return self._decode(session_jwt)

    def _encode(self, session_data: dict) -> str:
        return jwt.encode(session_data, self._secret, algorithm='HS256')

    def _decode(self, session_jwt: str) -> domain.Session:
        try:
            data = jwt.decode(session_jwt, self._secret, algorithms=['HS256'])
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidToken('Invalid or corrupted session token') from e
        return domain.Session.from_dict(data)

    def _unpack_cookie(self, cookie: str) -> dict:
        try:
            data = dict(jwt.decode(cookie, self._secret,
                                   algorithms=['HS256']))
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidToken('Session cookie is malformed') from e
        return data

    def _pack_cookie(self, cookie_data: dict) -> str:
        return jwt.encode(cookie_data, self._secret, algorithm='HS256')


def init_app(app: Flask) -> None:
    """Set default configuration parameters and attach a session store."""
    config = app.config
    config.setdefault('REDIS_HOST', 'localhost')
    config.setdefault('REDIS_PORT', '6379')
    config.setdefault('REDIS_DATABASE', '0')
    config.setdefault('REDIS_TOKEN', None)
    config.setdefault('REDIS_FAKE', False)
    config.setdefault('SESSION_DURATION', '36000')
    if not config.get('JWT_SECRET'):
        config['JWT_SECRET'] = config.get('SECRET_KEY')
    app.extensions[EXTENSION_KEY] = get_redis_session(app)


def get_redis_session(app: Flask) -> SessionStore:
    """Get a new session store configured from ``app``."""
    config = app.config
    return SessionStore(
        config.get('REDIS_HOST', 'localhost'),
        int(config.get('REDIS_PORT', '6379')),
        int(config.get('REDIS_DATABASE', '0')),
        config['JWT_SECRET'],
        duration=int(config.get('SESSION_DURATION', '36000')),
        token=config.get('REDIS_TOKEN', None),
        fake=bool(config.get('REDIS_FAKE', False))
    )


def current_session() -> SessionStore:
    """Get the :class:`.SessionStore` of the current application."""
    store: SessionStore = current_app.extensions[EXTENSION_KEY]
    return store


@wraps(SessionStore.create)
def create(user: domain.User, ip_address: Optional[str],
           remote_host: Optional[str]) -> domain.Session:
    """Create a new session."""
    return current_session().create(user, ip_address, remote_host)


@wraps(SessionStore.load)
def load(cookie: str) -> domain.Session:
    """Load a session by cookie value."""
    return current_session().load(cookie)


@wraps(SessionStore.delete)
def delete(cookie: str) -> None:
    """Delete a session in the key-value store."""
    return current_session().delete(cookie)


@wraps(SessionStore.generate_cookie)
def generate_cookie(session: domain.Session) -> str:
    """Generate a cookie from a :class:`domain.Session`."""
    return current_session().generate_cookie(session)
