"""
Diary-we-write web application.

A small Flask application where people keep one diary entry per day. Users
create a local account with a username and password, or sign in through an
external identity provider (Google or Facebook). Once signed in, a user can
submit the entry for today; submitting again on the same day replaces the
earlier text. The diaries view lists every entry written today, by anyone.

Context
-------
User accounts and their entries live in a relational database accessed
through SQLAlchemy (see :mod:`diarywewrite.services.users`). When a user
authenticates they are issued a session key in the form of a signed cookie;
the session itself is kept in Redis (see :mod:`diarywewrite.services.sessions`)
and is attached to each incoming request by :class:`diarywewrite.auth.Auth`.

OAuth2 handshakes with the external providers are handled by :mod:`authlib`
(see :mod:`diarywewrite.services.providers`). Accounts for provider users are
provisioned on their first successful login.
"""
