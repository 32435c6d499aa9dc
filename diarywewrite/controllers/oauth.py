"""
Controllers for logging in through an external identity provider.

The handshake has two legs. :func:`begin` sends the browser to the
provider's consent screen; the provider then redirects back to the callback
route, handled by :func:`complete`, which looks up (or provisions) the
account for the provider's user identifier and starts a session.
"""

from typing import Optional, Tuple
from http import HTTPStatus
import logging

from flask import Response, current_app, url_for
from retry import retry
from werkzeug.exceptions import InternalServerError, NotFound

from .. import domain
from ..services import providers, users
from ..services.exceptions import ProviderLoginFailed, Unavailable, \
    UnknownProvider
from .authentication import start_session

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def callback_url(provider_name: str) -> str:
    """Absolute URL to which the provider should send the user back."""
    base = current_app.config['OAUTH_CALLBACK_BASE_URL'].rstrip('/')
    return base + url_for('ui.oauth_callback', provider_name=provider_name)


def begin(provider_name: str) -> Response:
    """Redirect the user to the provider's consent screen."""
    try:
        return providers.authorize_redirect(provider_name,
                                            callback_url(provider_name))
    except UnknownProvider as e:
        raise NotFound(str(e)) from e


def complete(provider_name: str, ip: Optional[str]) -> ResponseData:
    """Handle the provider's redirect back to us."""
    try:
        providers.get_provider(provider_name)
    except UnknownProvider as e:
        raise NotFound(str(e)) from e

    retry_login = {'Location': url_for('ui.login')}
    try:
        provider_id = providers.fetch_identifier(provider_name)
    except ProviderLoginFailed as e:
        logger.debug('Provider login failed: %s', e)
        return {}, HTTPStatus.FOUND, retry_login

    try:
        user = _do_find_or_create(provider_name, provider_id)
    except Unavailable as e:
        logger.error('Could not load %s user %s: %s',
                     provider_name, provider_id, e)
        raise InternalServerError('Cannot log in') from e

    data = {'cookies': start_session(user, ip)}
    return data, HTTPStatus.FOUND, {'Location': url_for('ui.diaries')}


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _do_find_or_create(provider_name: str, provider_id: str) -> domain.User:
    return users.get_or_create_by_provider(provider_name, provider_id)
