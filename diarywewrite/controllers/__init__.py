"""
Request controllers for the diary application.

Controllers return a ``(data, status code, headers)`` tuple; the routes in
:mod:`diarywewrite.routes.ui` turn these into rendered templates or
redirects. Controllers that establish or end a session put the cookies to set
under the ``cookies`` key of ``data``.
"""

from . import authentication, diaries, oauth, registration
