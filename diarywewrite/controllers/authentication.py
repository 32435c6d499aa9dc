"""
Controllers for logging in and out with a local account.

When a user logs in they are issued a session key that is stored as a cookie
in their browser. The session is registered in the session store; on
subsequent requests :class:`diarywewrite.auth.Auth` uses the cookie to load
it again.
"""

from typing import Any, Dict, Optional, Tuple
from http import HTTPStatus
import logging

from flask import url_for
from retry import retry
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError
from wtforms import Form, PasswordField, StringField
from wtforms.validators import DataRequired

from .. import domain
from ..services import sessions, users
from ..services.exceptions import AuthenticationFailed, \
    SessionCreationFailed, SessionDeletionFailed, Unavailable

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


class LoginForm(Form):
    """Log in form."""

    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


def login(method: str, form_data: MultiDict, ip: Optional[str]) \
        -> ResponseData:
    """
    Provide the login form, or log the user in.

    Parameters
    ----------
    method : str
        ``GET`` or ``POST``.
    form_data : MultiDict
        Should include `username` and `password` data.
    ip : str
        IP or hostname of client.

    Returns
    -------
    dict
        Additional data to add to the response.
    int
        Status code. This should be 303 (See Other) if all goes well.
    dict
        Headers to add to the response.

    """
    if method == 'GET':
        logger.debug('Request for login form')
        return {'form': LoginForm()}, HTTPStatus.OK, {}

    logger.debug('Login form submitted')
    form = LoginForm(form_data)
    retry_login = {'Location': url_for('ui.login')}
    if not form.validate():
        logger.debug('Login form is not valid: %s', form.errors)
        return {}, HTTPStatus.SEE_OTHER, retry_login

    try:
        user = _do_authn(form.username.data, form.password.data)
    except AuthenticationFailed as e:
        logger.debug('Authentication failed for %s: %s',
                     form.username.data, e)
        return {}, HTTPStatus.SEE_OTHER, retry_login
    except Unavailable as e:
        logger.error('Could not authenticate %s: %s', form.username.data, e)
        return {}, HTTPStatus.SEE_OTHER, retry_login

    data = {'cookies': start_session(user, ip)}
    return data, HTTPStatus.SEE_OTHER, {'Location': url_for('ui.diaries')}


def logout(session_cookie: Optional[str]) -> ResponseData:
    """
    Log the user out, and redirect to the home page.

    Parameters
    ----------
    session_cookie : str or None
        If not None, the session it refers to is deleted.

    """
    logger.debug('Request to log out')
    if session_cookie:
        try:
            sessions.delete(session_cookie)
        except SessionDeletionFailed as e:
            logger.debug('Logout failed: %s', e)
    data = {'cookies': {'auth_session_cookie': ('', 0)}}
    return data, HTTPStatus.SEE_OTHER, {'Location': url_for('ui.home')}


def start_session(user: domain.User, ip: Optional[str]) -> Dict[str, Any]:
    """
    Create a session for ``user``.

    Returns the cookies that the route should set on the response.
    """
    try:
        session = sessions.create(user, ip, ip)
        cookie = sessions.generate_cookie(session)
        logger.debug('Created session: %s', session.session_id)
    except SessionCreationFailed as e:
        logger.error('Could not create session: %s', e)
        raise InternalServerError('Cannot log in') from e
    return {'auth_session_cookie': (cookie, session.expires)}


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _do_authn(username: str, password: str) -> domain.User:
    return users.authenticate(username, password)
