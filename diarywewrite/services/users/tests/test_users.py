"""Tests for :mod:`diarywewrite.services.users`."""

from unittest import TestCase, mock
from contextlib import contextmanager
import os
import shutil
import string
import tempfile
import uuid

from flask import Flask
from hypothesis import given, settings
from hypothesis import strategies as st
from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, OperationalError

from diarywewrite.domain import DiaryEntry, LocalIdentity, ProviderIdentity
from diarywewrite.services import users
from diarywewrite.services.exceptions import AuthenticationFailed, \
    ConcurrentUpdate, NoSuchUser, RegistrationFailed, Unavailable, \
    UnknownProvider
from diarywewrite.services.users.models import DBDiary, DBUser

DATABASE_URL = 'sqlite://'


@contextmanager
def in_memory_db():
    """Provide an in-memory sqlite database for testing purposes."""
    app = Flask('foo')
    app.config['SQLALCHEMY_DATABASE_URI'] = DATABASE_URL
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    users.init_app(app)

    with app.app_context():
        users.create_all()
        try:
            yield users.util.current_session()
        finally:
            users.drop_all()


@contextmanager
def file_db():
    """Provide a file-backed sqlite database that other engines can share."""
    tmpdir = tempfile.mkdtemp()
    db_url = f'sqlite:///{os.path.join(tmpdir, "diaries.db")}'
    app = Flask('foo')
    app.config['SQLALCHEMY_DATABASE_URI'] = db_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    users.init_app(app)

    with app.app_context():
        users.create_all()
        try:
            yield db_url
        finally:
            users.drop_all()
            users.models.db.engine.dispose()
            shutil.rmtree(tmpdir)


class TestRegister(TestCase):
    """Local accounts are created with a hashed password."""

    def test_register(self):
        """A new username is registered."""
        with in_memory_db() as session:
            user = users.register('foouser', 'thepassword')
            self.assertEqual(user.identity, LocalIdentity('foouser'))
            self.assertEqual(user.diaries, [])

            db_user = session.query(DBUser).one()
            self.assertEqual(str(db_user.user_id), user.user_id)
            self.assertNotEqual(db_user.password_hash, 'thepassword',
                                'Password is not stored in the clear')

    def test_register_twice(self):
        """Registering a taken username fails, and adds no account."""
        with in_memory_db() as session:
            users.register('foouser', 'thepassword')
            with self.assertRaises(RegistrationFailed):
                users.register('foouser', 'otherpassword')
            self.assertEqual(session.query(DBUser).count(), 1)

    def test_lost_registration_race(self):
        """The unique constraint catches a registration that slips past."""
        with in_memory_db() as session:
            users.register('foouser', 'thepassword')
            with mock.patch(f'{users.__name__}._get_by_username',
                            return_value=None):
                with self.assertRaises(RegistrationFailed):
                    users.register('foouser', 'otherpassword')
            self.assertEqual(session.query(DBUser).count(), 1)


class TestAuthenticate(TestCase):
    """Local accounts authenticate with username and password."""

    def test_good_password(self):
        """The right password yields the user."""
        with in_memory_db():
            registered = users.register('foouser', 'thepassword')
            user = users.authenticate('foouser', 'thepassword')
            self.assertEqual(user.user_id, registered.user_id)

    def test_bad_password(self):
        """The wrong password fails."""
        with in_memory_db():
            users.register('foouser', 'thepassword')
            with self.assertRaises(AuthenticationFailed):
                users.authenticate('foouser', 'notthepassword')

    def test_no_such_user(self):
        """An unknown username fails the same way as a wrong password."""
        with in_memory_db():
            with self.assertRaises(AuthenticationFailed):
                users.authenticate('nobody', 'thepassword')

    def test_provider_account_has_no_password(self):
        """Provider accounts cannot log in with a password."""
        with in_memory_db() as session:
            users.get_or_create_by_provider('google', '1234')
            db_user = session.query(DBUser).one()
            db_user.username = 'googler'
            session.commit()
            with self.assertRaises(AuthenticationFailed):
                users.authenticate('googler', '')

    def test_database_down(self):
        """Query errors are raised as :class:`.Unavailable`."""
        with in_memory_db():
            with mock.patch(f'{users.__name__}._get_by_username') as mock_get:
                mock_get.side_effect = OperationalError('SELECT 1', {}, Exception('down'))
                with self.assertRaises(Unavailable):
                    users.authenticate('foouser', 'thepassword')


class TestGetOrCreateByProvider(TestCase):
    """Accounts for identity-provider users are provisioned on first login."""

    def test_first_login_creates_account(self):
        """An unseen identifier creates exactly one account."""
        with in_memory_db() as session:
            user = users.get_or_create_by_provider('google', '1234')
            self.assertEqual(user.identity, ProviderIdentity('google', '1234'))
            self.assertEqual(session.query(DBUser).count(), 1)

    def test_second_login_reuses_account(self):
        """A known identifier gets the same account back."""
        with in_memory_db() as session:
            first = users.get_or_create_by_provider('facebook', '99')
            second = users.get_or_create_by_provider('facebook', '99')
            self.assertEqual(first.user_id, second.user_id)
            self.assertEqual(session.query(DBUser).count(), 1)

    def test_providers_are_separate(self):
        """The same identifier at two providers is two accounts."""
        with in_memory_db() as session:
            google = users.get_or_create_by_provider('google', '42')
            facebook = users.get_or_create_by_provider('facebook', '42')
            self.assertNotEqual(google.user_id, facebook.user_id)
            self.assertEqual(session.query(DBUser).count(), 2)

    def test_concurrent_first_login(self):
        """If another request provisions the account first, we use theirs."""
        with in_memory_db() as session:
            session.add(DBUser(google_id='1234'))
            session.commit()
            existing = session.query(DBUser).one()

            # Simulate a read that happened before the other insert landed.
            query = session.query(DBUser).filter(DBUser.google_id == '1234')
            with mock.patch.object(type(query), 'one_or_none',
                                   return_value=None):
                user = users.get_or_create_by_provider('google', '1234')
            self.assertEqual(user.user_id, str(existing.user_id))
            self.assertEqual(session.query(DBUser).count(), 1)

    def test_unknown_provider(self):
        """Only known providers have identifier columns."""
        with in_memory_db():
            with self.assertRaises(UnknownProvider):
                users.get_or_create_by_provider('myspace', '1')


class TestSaveDiary(TestCase):
    """A user has at most one entry per date."""

    def test_first_entry(self):
        """The first entry of the day is added."""
        with in_memory_db():
            user = users.register('foouser', 'thepassword')
            entry = users.save_diary(user.user_id, '3/14/2024', 'Pi day.')
            self.assertEqual(entry, DiaryEntry('3/14/2024', 'Pi day.'))
            user = users.get_user_by_id(user.user_id)
            self.assertEqual(user.diaries, [entry])

    def test_same_day_overwrites(self):
        """A second entry on the same day replaces the first."""
        with in_memory_db():
            user = users.register('foouser', 'thepassword')
            users.save_diary(user.user_id, '3/14/2024',
                             'Today I debugged the server.')
            users.save_diary(user.user_id, '3/14/2024', 'Fixed it.')
            user = users.get_user_by_id(user.user_id)
            self.assertEqual(user.diaries,
                             [DiaryEntry('3/14/2024', 'Fixed it.')])

    def test_different_days_accumulate(self):
        """Entries on different days are kept separately."""
        with in_memory_db():
            user = users.register('foouser', 'thepassword')
            users.save_diary(user.user_id, '3/14/2024', 'Pi day.')
            users.save_diary(user.user_id, '3/15/2024', 'Ides of March.')
            users.save_diary(user.user_id, '3/14/2024', 'Pie day.')
            user = users.get_user_by_id(user.user_id)
            self.assertEqual(user.diaries, [
                DiaryEntry('3/14/2024', 'Pie day.'),
                DiaryEntry('3/15/2024', 'Ides of March.'),
            ])

    def test_no_such_user(self):
        """Saving for a user that does not exist fails."""
        with in_memory_db():
            with self.assertRaises(NoSuchUser):
                users.save_diary('42', '3/14/2024', 'Pi day.')

    def test_duplicate_rows_are_rejected(self):
        """The database refuses a second row for the same user and date."""
        with in_memory_db() as session:
            user = users.register('foouser', 'thepassword')
            session.add(DBDiary(user_id=int(user.user_id), date='3/14/2024',
                                task='one'))
            session.add(DBDiary(user_id=int(user.user_id), date='3/14/2024',
                                task='two'))
            with self.assertRaises(IntegrityError):
                session.commit()
            session.rollback()

    @settings(max_examples=25, deadline=None)
    @given(tasks=st.lists(st.text(alphabet=string.ascii_letters + ' .,!?'),
                          min_size=1, max_size=6))
    def test_last_submission_wins(self, tasks):
        """After any same-day sequence there is one entry, the last one."""
        with in_memory_db():
            user = users.register(f'user-{uuid.uuid4()}', 'thepassword')
            for task in tasks:
                users.save_diary(user.user_id, '3/14/2024', task)
            user = users.get_user_by_id(user.user_id)
            self.assertEqual(user.diaries,
                             [DiaryEntry('3/14/2024', tasks[-1])])

    @settings(max_examples=25, deadline=None)
    @given(days=st.lists(st.integers(min_value=1, max_value=28),
                         min_size=1, max_size=8))
    def test_one_entry_per_distinct_day(self, days):
        """Each distinct day submitted yields exactly one entry."""
        with in_memory_db():
            user = users.register(f'user-{uuid.uuid4()}', 'thepassword')
            for day in days:
                users.save_diary(user.user_id, f'2/{day}/2024', f'day {day}')
            user = users.get_user_by_id(user.user_id)
            dates = [entry.date for entry in user.diaries]
            self.assertEqual(sorted(dates),
                             sorted({f'2/{day}/2024' for day in days}))


class TestConcurrentSaveDiary(TestCase):
    """Two requests saving the same day for one user end with one entry."""

    def test_concurrent_same_day_append(self):
        """An entry added after we looked is overwritten on retry."""
        with file_db() as db_url:
            user = users.register('foouser', 'thepassword')
            other = create_engine(db_url)
            load_dbuser = users._load_dbuser
            calls = []

            def load_then_race(user_id, session):
                db_user = load_dbuser(user_id, session)
                len(db_user.diaries)    # Loaded before the other commit.
                if not calls:
                    with other.begin() as conn:
                        conn.execute(
                            text('INSERT INTO diaries (user_id, date, task) '
                                 'VALUES (:user_id, :date, :task)'),
                            {'user_id': int(user.user_id),
                             'date': '3/14/2024', 'task': 'other request'}
                        )
                calls.append(user_id)
                return db_user

            try:
                with mock.patch(f'{users.__name__}._load_dbuser',
                                side_effect=load_then_race):
                    entry = users.save_diary(user.user_id, '3/14/2024',
                                             'mine')
            finally:
                other.dispose()

            self.assertEqual(len(calls), 2, 'Retried once')
            self.assertEqual(entry, DiaryEntry('3/14/2024', 'mine'))
            user = users.get_user_by_id(user.user_id)
            self.assertEqual(user.diaries, [DiaryEntry('3/14/2024', 'mine')])

    def test_conflict_raises_concurrent_update(self):
        """Each conflicting attempt is reported as a concurrent update."""
        with in_memory_db():
            user = users.register('foouser', 'thepassword')
            with mock.patch(f'{users.__name__}.transaction') as mock_txn:
                mock_txn.return_value.__enter__.side_effect = \
                    IntegrityError('INSERT', {}, Exception('duplicate'))
                with mock.patch('retry.api.time.sleep'):
                    with self.assertRaises(ConcurrentUpdate):
                        users.save_diary(user.user_id, '3/14/2024', 'mine')
            self.assertEqual(mock_txn.call_count, 3, 'Tried three times')


class TestGetUsersWithDiaryOn(TestCase):
    """Listing finds exactly the users who wrote on a given date."""

    def test_get_users(self):
        """Only users with an entry for the date are returned."""
        with in_memory_db():
            alice = users.register('alice', 'alicepassword')
            bob = users.register('bob', 'bobpassword')
            carol = users.get_or_create_by_provider('google', 'carol')
            users.save_diary(alice.user_id, '3/14/2024', 'Pi day.')
            users.save_diary(bob.user_id, '3/13/2024', 'Yesterday.')
            users.save_diary(carol.user_id, '3/14/2024', 'Also pi day.')
            users.save_diary(carol.user_id, '3/12/2024', 'Earlier.')

            found = users.get_users_with_diary_on('3/14/2024')
            self.assertEqual([u.user_id for u in found],
                             [alice.user_id, carol.user_id])
            self.assertEqual(found[1].diary_on('3/14/2024').task,
                             'Also pi day.')

    def test_nobody_wrote(self):
        """No entries, no users."""
        with in_memory_db():
            users.register('alice', 'alicepassword')
            self.assertEqual(users.get_users_with_diary_on('3/14/2024'), [])
