"""
OAuth2 domain models persisted by the stores.

Token carries the authorization code, access token and refresh token of a
single grant together with their independent expiry windows. Client is a
registered OAuth2 client. Both serialize to the JSON payload kept in the
``data`` column of their table.
"""

import json
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union


# Empty sub-tokens are stored with this timestamp instead of NULL.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def get_current_time() -> datetime:
    """Get the current UTC time."""
    return datetime.now(timezone.utc)


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif not value:
        return ZERO_TIME
    else:
        parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_duration(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=float(value or 0))


@dataclass
class Token:
    """
    Token information shared by the three grant artifacts.

    A token may hold any combination of code, access and refresh values.
    Each has its own creation time and expiry window; an empty value
    means the artifact is absent.
    """

    client_id: str = ""
    user_id: str = ""
    redirect_uri: str = ""
    scope: str = ""
    code: str = ""
    code_created_at: datetime = ZERO_TIME
    code_expires_in: timedelta = field(default_factory=timedelta)
    access: str = ""
    access_created_at: datetime = ZERO_TIME
    access_expires_in: timedelta = field(default_factory=timedelta)
    refresh: str = ""
    refresh_created_at: datetime = ZERO_TIME
    refresh_expires_in: timedelta = field(default_factory=timedelta)

    def code_expires_at(self) -> datetime:
        """Moment the authorization code stops being valid."""
        return self.code_created_at + self.code_expires_in

    def access_expires_at(self) -> datetime:
        """Moment the access token stops being valid."""
        return self.access_created_at + self.access_expires_in

    def refresh_expires_at(self) -> datetime:
        """Moment the refresh token stops being valid."""
        return self.refresh_created_at + self.refresh_expires_in

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether every populated artifact has expired.

        This is the in-process twin of the condition used by the
        garbage collector: an empty artifact never keeps a token alive.

        Args:
            now: Reference time, defaults to the current UTC time

        Returns:
            True if no artifact of the token is still live
        """
        now = now or get_current_time()
        windows = (
            (self.code, self.code_expires_at),
            (self.access, self.access_expires_at),
            (self.refresh, self.refresh_expires_at),
        )
        return all(not value or expires_at() <= now for value, expires_at in windows)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert token to dictionary.

        Returns:
            Dictionary representation with ISO timestamps and windows in seconds
        """
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, timedelta):
                value = value.total_seconds()
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Token':
        """
        Create Token from dictionary.

        Unknown keys are ignored so payloads written by newer versions
        still load.

        Args:
            data: Dictionary data

        Returns:
            Token instance
        """
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name.endswith("_created_at"):
                value = _parse_time(value)
            elif f.name.endswith("_expires_in"):
                value = _parse_duration(value)
            kwargs[f.name] = value
        return cls(**kwargs)

    def to_json(self) -> str:
        """Convert token to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> 'Token':
        """Create Token from JSON string."""
        return cls.from_dict(json.loads(payload))


@dataclass
class Client:
    """Registered OAuth2 client."""

    id: str = ""
    secret: str = ""
    domain: str = ""
    user_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "secret": self.secret,
            "domain": self.domain,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Client':
        return cls(
            id=data.get("id", ""),
            secret=data.get("secret", ""),
            domain=data.get("domain", ""),
            user_id=data.get("user_id", ""),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> 'Client':
        return cls.from_dict(json.loads(payload))


def new_token(**kwargs) -> Token:
    """
    Create an empty token, optionally pre-filled.

    Args:
        **kwargs: Token fields to set

    Returns:
        Token instance
    """
    return Token(**kwargs)


__all__ = [
    "ZERO_TIME",
    "Token",
    "Client",
    "new_token",
    "get_current_time",
]
