"""
Integration with the users datastore.

Provides registration and authentication of local accounts, provisioning of
accounts for identity-provider users, and storage of diary entries.
"""

from typing import List
import logging

from retry import retry
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.session import Session
from werkzeug.security import check_password_hash, generate_password_hash

from ...domain import User, DiaryEntry, LocalIdentity, ProviderIdentity
from ..exceptions import AuthenticationFailed, ConcurrentUpdate, \
    NoSuchUser, RegistrationFailed, Unavailable, UnknownProvider
from . import models, util
from .models import DBUser, DBDiary, PROVIDER_COLUMNS

logger = logging.getLogger(__name__)

init_app = util.init_app
create_all = util.create_all
drop_all = util.drop_all
transaction = util.transaction
is_available = util.is_available


def register(username: str, password: str) -> User:
    """
    Create a new local account.

    Raises
    ------
    :class:`.RegistrationFailed`
        The username is already taken.

    """
    try:
        with transaction() as session:
            if _get_by_username(username, session) is not None:
                raise RegistrationFailed(f'Username {username} is taken')
            db_user = DBUser(username=username,
                             password_hash=generate_password_hash(password))
            session.add(db_user)
    except IntegrityError as e:
        # Lost a race with another registration for the same name.
        raise RegistrationFailed(f'Username {username} is taken') from e
    logger.debug('Registered user %s with id %s', username, db_user.user_id)
    return _to_domain(db_user)


def authenticate(username: str, password: str) -> User:
    """
    Validate username/password. If successful, retrieve user details.

    Raises
    ------
    :class:`.AuthenticationFailed`
        Failed to authenticate user with provided credentials.

    """
    db_user = _query(lambda session: _get_by_username(username, session))
    if db_user is None:
        logger.debug('No such user: %s', username)
        raise AuthenticationFailed('Invalid username or password') \
            from NoSuchUser(username)
    if not db_user.password_hash \
            or not check_password_hash(db_user.password_hash, password):
        raise AuthenticationFailed('Invalid username or password')
    return _to_domain(db_user)


def get_or_create_by_provider(provider: str, provider_id: str) -> User:
    """
    Get the account for a provider identifier, creating it if necessary.

    The insert is conditional on the unique provider-identifier column, so
    two concurrent first logins for the same identity yield a single account.
    """
    column = _provider_column(provider)
    db_user = _query(
        lambda session: session.query(DBUser)
        .filter(column == provider_id).one_or_none()
    )
    if db_user is not None:
        return _to_domain(db_user)
    try:
        with transaction() as session:
            db_user = DBUser(**{column.key: provider_id})
            session.add(db_user)
        logger.debug('Provisioned %s user %s', provider, db_user.user_id)
    except IntegrityError:
        logger.debug('%s user %s was created concurrently',
                     provider, provider_id)
        db_user = _query(
            lambda session: session.query(DBUser)
            .filter(column == provider_id).one()
        )
    return _to_domain(db_user)


def get_user_by_id(user_id: str) -> User:
    """Load a user by ID."""
    db_user = _query(lambda session: _load_dbuser(user_id, session))
    return _to_domain(db_user)


@retry(ConcurrentUpdate, tries=3, delay=0.1)
def save_diary(user_id: str, date: str, task: str) -> DiaryEntry:
    """
    Set the user's entry for ``date``.

    If the user already has an entry for ``date`` its content is replaced,
    otherwise a new entry is added.
    """
    try:
        with transaction() as session:
            db_user = _load_dbuser(user_id, session)
            for db_diary in db_user.diaries:
                if db_diary.date == date:
                    db_diary.task = task
                    break
            else:
                db_user.diaries.append(DBDiary(date=date, task=task))
    except IntegrityError as e:
        # Another request added an entry for this date since we loaded the
        # user; try again, which will update that entry.
        raise ConcurrentUpdate(f'Entry for {date} added concurrently') from e
    return DiaryEntry(date=date, task=task)


def get_users_with_diary_on(date: str) -> List[User]:
    """Get all users who have an entry for ``date``."""
    db_users = _query(
        lambda session: session.query(DBUser)
        .join(DBUser.diaries)
        .filter(DBDiary.date == date)
        .order_by(DBUser.user_id)
        .all()
    )
    return [_to_domain(db_user) for db_user in db_users]


def _query(func):  # type: ignore
    session = util.current_session()
    try:
        return func(session)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error('Query failed: %s', e)
        raise Unavailable(f'Database error: {e}') from e


def _get_by_username(username: str, session: Session) -> DBUser:
    return session.query(DBUser) \
        .filter(DBUser.username == username) \
        .one_or_none()


def _load_dbuser(user_id: str, session: Session) -> DBUser:
    try:
        db_user = session.get(DBUser, int(user_id))
    except ValueError as e:
        raise NoSuchUser(f'Malformed user id {user_id}') from e
    if db_user is None:
        raise NoSuchUser(f'No user with id {user_id}')
    return db_user


def _provider_column(provider: str):  # type: ignore
    try:
        return PROVIDER_COLUMNS[provider]
    except KeyError as e:
        raise UnknownProvider(f'No such provider: {provider}') from e


def _to_domain(db_user: DBUser) -> User:
    identity: object
    if db_user.username:
        identity = LocalIdentity(username=db_user.username)
    else:
        for provider, column in PROVIDER_COLUMNS.items():
            provider_id = getattr(db_user, column.key)
            if provider_id:
                identity = ProviderIdentity(provider=provider,
                                            provider_id=provider_id)
                break
        else:
            raise NoSuchUser(f'User {db_user.user_id} has no identity')
    return User(
        user_id=str(db_user.user_id),
        identity=identity,  # type: ignore
        diaries=[DiaryEntry(date=d.date, task=d.task)
                 for d in db_user.diaries]
    )
