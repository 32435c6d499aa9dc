"""Database models for user accounts and their diary entries."""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, ForeignKey, Integer, String, Text, \
    UniqueConstraint, text
from sqlalchemy.orm import relationship

db = SQLAlchemy()


class DBUser(db.Model):  # type: ignore
    """
    User accounts.

    Local accounts have ``username`` and ``password_hash``; accounts
    provisioned by an identity provider have the identifier column for that
    provider instead.

    +---------------+--------------+------+-----+
    | Field         | Type         | Null | Key |
    +---------------+--------------+------+-----+
    | user_id       | int          | NO   | PRI |
    | username      | varchar(255) | YES  | UNI |
    | password_hash | varchar(255) | YES  |     |
    | google_id     | varchar(255) | YES  | UNI |
    | facebook_id   | varchar(255) | YES  | UNI |
    +---------------+--------------+------+-----+
    """

    __tablename__ = 'users'

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=True)
    google_id = Column(String(255), unique=True, nullable=True)
    facebook_id = Column(String(255), unique=True, nullable=True)

    diaries = relationship('DBDiary', back_populates='user',
                           order_by='DBDiary.diary_id',
                           cascade='all, delete-orphan')


class DBDiary(db.Model):  # type: ignore
    """Diary entries. A user has at most one entry per date."""

    __tablename__ = 'diaries'
    __table_args__ = (
        UniqueConstraint('user_id', 'date', name='uq_diaries_user_date'),
    )

    diary_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(ForeignKey('users.user_id'), nullable=False, index=True)
    date = Column(String(10), nullable=False, index=True)
    task = Column(Text, nullable=False, server_default=text("''"))

    user = relationship('DBUser', back_populates='diaries')


PROVIDER_COLUMNS = {
    'google': DBUser.google_id,
    'facebook': DBUser.facebook_id,
}
"""Account column holding each provider's identifier."""
