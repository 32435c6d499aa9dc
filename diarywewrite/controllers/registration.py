"""Controllers for creating new local accounts."""

from typing import Optional, Tuple
from http import HTTPStatus
import logging

from flask import url_for
from retry import retry
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError
from wtforms import Form, PasswordField, StringField
from wtforms.validators import DataRequired, Length

from .. import domain
from ..services import users
from ..services.exceptions import RegistrationFailed, Unavailable
from .authentication import start_session

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


class RegistrationForm(Form):
    """User registration form."""

    username = StringField('Username',
                           validators=[DataRequired(), Length(max=255)])
    password = PasswordField('Password', validators=[DataRequired()])


def register(method: str, params: MultiDict, ip: Optional[str]) \
        -> ResponseData:
    """
    Handle requests for the registration view.

    A successful registration logs the new user in. On any failure the user
    is sent back to the registration form; the reason is only logged.
    """
    if method == 'GET':
        return {'form': RegistrationForm()}, HTTPStatus.OK, {}

    logger.debug('Registration form submitted')
    form = RegistrationForm(params)
    retry_register = {'Location': url_for('ui.register')}
    if not form.validate():
        logger.debug('Registration form not valid: %s', form.errors)
        return {}, HTTPStatus.SEE_OTHER, retry_register

    try:
        user = _do_register(form.username.data, form.password.data)
    except RegistrationFailed as e:
        logger.error('Registration failed: %s', e)
        return {}, HTTPStatus.SEE_OTHER, retry_register
    except Unavailable as e:
        logger.error('Registration failed: %s', e)
        raise InternalServerError('Registration failed') from e

    data = {'cookies': start_session(user, ip), 'user_id': user.user_id}
    return data, HTTPStatus.SEE_OTHER, {'Location': url_for('ui.diaries')}


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _do_register(username: str, password: str) -> domain.User:
    return users.register(username, password)
