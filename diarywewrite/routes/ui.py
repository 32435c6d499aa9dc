"""Provides Flask integration for the external user interface."""

from typing import Optional
from datetime import timedelta
from http import HTTPStatus
import logging

from flask import Blueprint, Response, current_app, make_response, \
    redirect, render_template, request, url_for

from ..auth.decorators import login_required, redirect_to_login
from ..controllers import authentication, diaries, oauth, registration
from ..services import users

logger = logging.getLogger(__name__)
blueprint = Blueprint('ui', __name__, url_prefix='')

REDIRECTS = (HTTPStatus.FOUND, HTTPStatus.SEE_OTHER)


def set_cookies(response: Response, data: dict) -> None:
    """
    Update a :class:`.Response` with cookies in controller data.

    Controllers seeking to update cookies must include a 'cookies' key
    in their response data.
    """
    cookies = data.pop('cookies', None)
    if cookies is None:
        return None
    for cookie_key, (cookie_value, expires) in cookies.items():
        cookie_name = current_app.config[f'{cookie_key.upper()}_NAME']
        max_age = timedelta(seconds=expires)
        logger.debug('Set cookie %s, max_age %s', cookie_name, max_age)
        params = dict(httponly=True,
                      domain=current_app.config['AUTH_SESSION_COOKIE_DOMAIN'])
        if current_app.config['AUTH_SESSION_COOKIE_SECURE']:
            # Lax, to allow reasonable links to authenticated views.
            params.update({'secure': True, 'samesite': 'lax'})
        response.set_cookie(cookie_name, cookie_value, max_age=max_age,
                            **params)


def _respond(data: dict, code: int, headers: dict,
             template: Optional[str] = None) -> Response:
    # Flask puts cookie-setting methods on the response, so we do that here
    # instead of in the controller.
    if code in REDIRECTS:
        response = make_response(redirect(headers['Location'], code=code))
        set_cookies(response, data)
        return response
    data.pop('cookies', None)
    return make_response(render_template(template, **data), code, headers)


@blueprint.after_request
def apply_response_headers(response: Response) -> Response:
    """Prevent UI redress attacks."""
    response.headers['Content-Security-Policy'] = "frame-ancestors 'none'"
    response.headers['X-Frame-Options'] = 'DENY'
    return response


@blueprint.route('/', methods=['GET'])
def home() -> Response:
    """Landing page; signed-in users go straight to the diaries."""
    if request.auth:
        return redirect(url_for('ui.diaries'), code=HTTPStatus.FOUND)
    return make_response(render_template('diarywewrite/home.html'))


@blueprint.route('/register', methods=['GET', 'POST'])
def register() -> Response:
    """Interface for creating new accounts."""
    data, code, headers = registration.register(request.method, request.form,
                                                request.remote_addr)
    return _respond(data, code, headers, 'diarywewrite/register.html')


@blueprint.route('/login', methods=['GET', 'POST'])
def login() -> Response:
    """User can log in with username and password."""
    data, code, headers = authentication.login(request.method, request.form,
                                               request.remote_addr)
    return _respond(data, code, headers, 'diarywewrite/login.html')


@blueprint.route('/logout', methods=['GET'])
def logout() -> Response:
    """Log out, and go back to the landing page."""
    cookie_name = current_app.config['AUTH_SESSION_COOKIE_NAME']
    data, code, headers = authentication.logout(request.cookies.get(cookie_name))
    return _respond(data, code, headers)


@blueprint.route('/auth/<string:provider_name>', methods=['GET'])
def oauth_begin(provider_name: str) -> Response:
    """Start logging in through an identity provider."""
    return oauth.begin(provider_name)


@blueprint.route('/auth/<string:provider_name>/diaries', methods=['GET'])
def oauth_callback(provider_name: str) -> Response:
    """The identity provider sends the user back here."""
    data, code, headers = oauth.complete(provider_name, request.remote_addr)
    return _respond(data, code, headers)


@blueprint.route('/diaries', methods=['GET'], endpoint='diaries')
def diaries_today() -> Response:
    """Everything written today."""
    if current_app.config['DIARIES_REQUIRE_AUTH'] and not request.auth:
        return redirect_to_login()
    data, code, headers = diaries.list_today()
    return _respond(data, code, headers, 'diarywewrite/diaries.html')


@blueprint.route('/submit', methods=['GET', 'POST'])
@login_required
def submit() -> Response:
    """Write or rewrite today's entry."""
    data, code, headers = diaries.submit(request.method, request.form,
                                         request.auth.user_id)
    return _respond(data, code, headers, 'diarywewrite/submit.html')


@blueprint.route('/auth_status', methods=['GET'])
def auth_status() -> Response:
    """Get if the app is running."""
    if not users.is_available():
        return make_response('Database unavailable',
                             HTTPStatus.SERVICE_UNAVAILABLE)
    return make_response('OK')
