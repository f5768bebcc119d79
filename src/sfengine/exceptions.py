from __future__ import annotations

from typing import Any, List


class SFEngineError(Exception):
    """Base class for every error raised by sfengine."""


class InvalidConfigurationError(SFEngineError, ValueError):
    """Raised when a SessionManager is built with an unknown environment."""

    def __init__(self, environment: str):
        self.environment = environment
        super().__init__(
            f"Invalid org type {environment!r}, your org type should be production or sandbox."
        )


class ProviderError(SFEngineError, RuntimeError):
    """Raised when the Salesforce client reports a failure."""


class AuthenticationError(ProviderError):
    """Raised when a session could not be established for a username."""

    def __init__(self, username: str, detail: str = ""):
        self.username = username
        msg = f"Salesforce login failed for {username}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class SaveError(ProviderError):
    """Raised when a save result comes back with success=false."""

    def __init__(self, operation: str, object_name: str, results: List[Any]):
        self.operation = operation
        self.object_name = object_name
        self.results = results
        failed = [r for r in results if not r.get("success")]
        errors = [e.get("message", str(e)) for r in failed for e in r.get("errors") or []]
        msg = f"{operation} on {object_name} failed for {len(failed)}/{len(results)} record(s)"
        if errors:
            msg += ": " + "; ".join(errors)
        super().__init__(msg)


class UnauthenticatedError(SFEngineError, RuntimeError):
    """Raised when a session is needed but no credential was ever set."""


class MissingCredentialsError(SFEngineError, RuntimeError):
    """Raised when the required Salesforce env vars are not present."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__("Missing required environment variables: " + ", ".join(missing))


class InvalidRecordError(SFEngineError, ValueError):
    """Raised when a record is missing what an operation needs (e.g. an Id)."""
