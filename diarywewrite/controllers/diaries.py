"""Controllers for writing and reading today's diary entries."""

from typing import Tuple
from http import HTTPStatus
import logging

from flask import current_app, url_for
from retry import retry
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import InternalServerError
from wtforms import Form, TextAreaField

from .. import domain
from ..services import users
from ..services.exceptions import NoSuchUser, Unavailable
from ..util import today

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


class DiaryForm(Form):
    """Form for today's entry."""

    diary = TextAreaField('What did you do today?')


def _today() -> str:
    return today(current_app.config.get('DIARY_TIMEZONE'))


def list_today() -> ResponseData:
    """Get every entry written today, one per user."""
    submitted_date = _today()
    try:
        found_users = _do_list(submitted_date)
    except Unavailable as e:
        logger.error('Could not list diaries for %s: %s', submitted_date, e)
        raise InternalServerError('Cannot list diaries') from e
    entries = []
    for user in found_users:
        entry = user.diary_on(submitted_date)
        if entry is not None:
            entries.append((user, entry))
    data = {'entries': entries, 'submitted_date': submitted_date}
    return data, HTTPStatus.OK, {}


def submit(method: str, form_data: MultiDict, user_id: str) -> ResponseData:
    """
    Provide the submission form, or save today's entry for the user.

    A user keeps at most one entry per day: submitting again on the same day
    replaces the earlier text.
    """
    if method == 'GET':
        return {'form': DiaryForm()}, HTTPStatus.OK, {}

    form = DiaryForm(form_data)
    task = form.diary.data or ''
    submitted_date = _today()
    try:
        _do_save(user_id, submitted_date, task)
    except NoSuchUser as e:
        # The session outlived the account it refers to.
        logger.error('Session user is gone: %s', e)
        data = {'cookies': {'auth_session_cookie': ('', 0)}}
        return data, HTTPStatus.SEE_OTHER, {'Location': url_for('ui.login')}
    except Unavailable as e:
        logger.error('Could not save diary for user %s: %s', user_id, e)
        raise InternalServerError('Cannot save diary') from e
    logger.debug('Saved entry for user %s on %s', user_id, submitted_date)
    return {}, HTTPStatus.SEE_OTHER, {'Location': url_for('ui.diaries')}


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _do_list(date: str) -> list:
    return users.get_users_with_diary_on(date)


@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _do_save(user_id: str, date: str, task: str) -> domain.DiaryEntry:
    return users.save_diary(user_id, date, task)
