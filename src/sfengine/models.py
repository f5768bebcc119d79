from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .exceptions import ProviderError


@dataclass(frozen=True)
class Credential:
    """Username/password pair used to open a Salesforce session."""

    username: str
    password: str = field(repr=False)
    # Appended to the password by Salesforce; empty when the password already carries it.
    security_token: str = field(default="", repr=False)

    @classmethod
    def from_mapping(cls, data: Any) -> Credential:
        """Accept a Credential or any mapping with username/password keys."""
        if isinstance(data, cls):
            return data
        return cls(
            username=data["username"],
            password=data["password"],
            security_token=data.get("security_token") or "",
        )


@dataclass
class Session:
    """An authenticated Salesforce connection."""

    instance_url: str
    access_token: str = field(repr=False)
    user_id: str
    username: str = ""
    # Vendor client used for follow-up calls (simple_salesforce.Salesforce).
    client: Any = field(default=None, repr=False, compare=False)


@dataclass
class LoginResult:
    """Outcome of SessionManager.login: a session or the error that prevented one."""

    session: Optional[Session] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.session is not None

    def unwrap(self) -> Session:
        """Return the session, or raise the login error."""
        if self.session is not None:
            return self.session
        if self.error is not None:
            raise self.error
        raise ProviderError("Login produced neither a session nor an error")
