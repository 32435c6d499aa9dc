"""
External identity providers, using :mod:`authlib`.

Each provider is an OAuth2 authorization server that redirects the user back
to us with an authorization code. We exchange the code for an access token,
fetch the user's profile, and keep only the provider's identifier for the
user; no other profile data is stored.
"""

from typing import Dict, NamedTuple, Optional
import logging

import requests
from authlib.integrations.base_client import OAuthError
from authlib.integrations.flask_client import OAuth
from flask import Flask, Response, current_app

from .exceptions import ProviderLoginFailed, UnknownProvider

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'diarywewrite.oauth'


class Provider(NamedTuple):
    """Endpoints and settings for an OAuth2 identity provider."""

    name: str
    authorize_url: str
    access_token_url: str
    api_base_url: str
    profile_endpoint: str
    """Path, relative to :attr:`.api_base_url`, of the profile resource."""

    id_field: str
    """Field of the profile that holds the provider's user identifier."""

    client_id_key: str
    client_secret_key: str
    scope: Optional[str] = None
    profile_params: Optional[Dict[str, str]] = None


PROVIDERS: Dict[str, Provider] = {
    'google': Provider(
        name='google',
        authorize_url='https://accounts.google.com/o/oauth2/v2/auth',
        access_token_url='https://oauth2.googleapis.com/token',
        api_base_url='https://www.googleapis.com/oauth2/v3/',
        profile_endpoint='userinfo',
        id_field='sub',
        client_id_key='GOOGLE_CLIENT_ID',
        client_secret_key='GOOGLE_CLIENT_SECRET',
        scope='profile',
    ),
    'facebook': Provider(
        name='facebook',
        authorize_url='https://www.facebook.com/dialog/oauth',
        access_token_url='https://graph.facebook.com/oauth/access_token',
        api_base_url='https://graph.facebook.com/',
        profile_endpoint='me',
        id_field='id',
        client_id_key='FACEBOOK_APP_ID',
        client_secret_key='FACEBOOK_APP_SECRET',
        profile_params={'fields': 'id'},
    ),
}


def init_app(app: Flask) -> None:
    """Register an OAuth client for each provider on ``app``."""
    oauth = OAuth(app)
    for provider in PROVIDERS.values():
        client_kwargs = {'scope': provider.scope} if provider.scope else {}
        oauth.register(
            name=provider.name,
            client_id=app.config.get(provider.client_id_key),
            client_secret=app.config.get(provider.client_secret_key),
            authorize_url=provider.authorize_url,
            access_token_url=provider.access_token_url,
            api_base_url=provider.api_base_url,
            client_kwargs=client_kwargs,
        )
        if not app.config.get(provider.client_id_key):
            logger.warning('%s is not set; %s login will fail',
                           provider.client_id_key, provider.name)
    app.extensions[EXTENSION_KEY] = oauth


def get_provider(name: str) -> Provider:
    """Get a :class:`.Provider` by name."""
    try:
        return PROVIDERS[name]
    except KeyError as e:
        raise UnknownProvider(f'No such provider: {name}') from e


def get_client(name: str):  # type: ignore
    """Get the authlib client for a provider in the current application."""
    get_provider(name)
    oauth: OAuth = current_app.extensions[EXTENSION_KEY]
    return oauth.create_client(name)


def authorize_redirect(name: str, redirect_uri: str) -> Response:
    """Send the user to the provider's consent screen."""
    return get_client(name).authorize_redirect(redirect_uri)


def fetch_identifier(name: str) -> str:
    """
    Complete the authorization code flow and get the user's identifier.

    Must be called while handling the provider's redirect back to us.

    Raises
    ------
    :class:`.ProviderLoginFailed`
        The user denied consent, the state did not match, or the profile
        could not be retrieved.

    """
    provider = get_provider(name)
    client = get_client(name)
    try:
        token = client.authorize_access_token()
        resp = client.get(provider.profile_endpoint, token=token,
                          params=provider.profile_params)
        resp.raise_for_status()
        profile = resp.json()
        provider_id = str(profile[provider.id_field])
    except (OAuthError, requests.RequestException, KeyError, ValueError) as e:
        raise ProviderLoginFailed(f'{name} login failed: {e}') from e
    logger.debug('%s identified user %s', name, provider_id)
    return provider_id
