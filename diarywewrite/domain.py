"""Defines the core data structures for the diary application."""

from typing import Any, Dict, List, NamedTuple, Optional, Union
from datetime import datetime
import dateutil.parser
from pytz import UTC


class LocalIdentity(NamedTuple):
    """An account that signs in with a username and password."""

    username: str


class ProviderIdentity(NamedTuple):
    """An account provisioned by an external identity provider."""

    provider: str
    """Name of the provider, e.g. ``google`` or ``facebook``."""

    provider_id: str
    """The provider's stable identifier for the user."""


Identity = Union[LocalIdentity, ProviderIdentity]


class DiaryEntry(NamedTuple):
    """A single day's diary entry."""

    date: str
    """Calendar date in ``M/D/YYYY`` form, without zero padding."""

    task: str
    """Free-text content of the entry."""


class User(NamedTuple):
    """A user account and its diary entries."""

    user_id: str
    identity: Identity
    diaries: List[DiaryEntry]

    @property
    def display_name(self) -> str:
        """Name suitable for display in the UI."""
        if isinstance(self.identity, LocalIdentity):
            return self.identity.username
        return f'{self.identity.provider.title()} user'

    def diary_on(self, date: str) -> Optional[DiaryEntry]:
        """Get the entry for ``date``, if one has been written."""
        for entry in self.diaries:
            if entry.date == date:
                return entry
        return None


class Session(NamedTuple):
    """Represents an authenticated session in the session store."""

    session_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    nonce: str
    ip_address: Optional[str] = None
    remote_host: Optional[str] = None

    @property
    def expired(self) -> bool:
        """Expired if the current time is later than :attr:`.end_time`."""
        return self.end_time <= datetime.now(tz=UTC)

    @property
    def expires(self) -> int:
        """Number of seconds until the session expires."""
        return max(0, int((self.end_time - datetime.now(tz=UTC)).total_seconds()))

    def to_dict(self) -> Dict[str, Any]:
        """Generate a JSON-friendly dict of the session."""
        data = self._asdict()
        data['start_time'] = self.start_time.isoformat()
        data['end_time'] = self.end_time.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Session':
        """Rebuild a :class:`.Session` from the output of :meth:`.to_dict`."""
        data = dict(data)
        data['start_time'] = dateutil.parser.parse(data['start_time'])
        data['end_time'] = dateutil.parser.parse(data['end_time'])
        return cls(**{k: v for k, v in data.items() if k in cls._fields})
