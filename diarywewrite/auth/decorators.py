"""
Authentication requirements for Flask routes.

Use :func:`login_required` on routes that only signed-in users may see:

.. code-block:: python

   @blueprint.route('/submit', methods=['GET', 'POST'])
   @login_required
   def submit() -> Response:
       ...

Anonymous requests are redirected to the login view.
"""

from typing import Any, Callable
from functools import wraps
from http import HTTPStatus
import logging

from flask import redirect, request, url_for

logger = logging.getLogger(__name__)


def redirect_to_login() -> Any:
    """Send the user to the login view."""
    return redirect(url_for('ui.login'), code=HTTPStatus.FOUND)


def login_required(func: Callable) -> Callable:
    """Redirect anonymous users to the login view."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if not getattr(request, 'auth', None):
            logger.debug('No valid session; redirecting to login')
            return redirect_to_login()
        return func(*args, **kwargs)
    return wrapper
