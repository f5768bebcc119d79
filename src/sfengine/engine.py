"""
SessionManager: memoized Salesforce sessions and describe results.

One session is established per username and kept in the cache for the life of
the process. Describe results are cached per (object, user id); queries and
record mutations always go to Salesforce.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .cache import Cache, shared_cache
from .exceptions import (
    InvalidConfigurationError,
    InvalidRecordError,
    ProviderError,
    SaveError,
    UnauthenticatedError,
)
from .models import Credential, LoginResult, Session
from .provider import SessionProvider, SimpleSalesforceProvider

_logger = logging.getLogger(__name__)

LOGIN_URLS: Dict[str, str] = {
    "production": "https://login.salesforce.com/",
    "sandbox": "https://test.salesforce.com/",
}

CURRENT_CREDENTIALS = "currentCredentials"
FRONTDOOR_PATH = "/secur/frontdoor.jsp?sid="

Records = Union[Mapping[str, Any], List[Mapping[str, Any]]]


def session_key(username: str) -> str:
    return f"con:{username}"


def _record_id(record: Any, object_name: str) -> str:
    if isinstance(record, str):
        return record
    record_id = record.get("Id") if isinstance(record, Mapping) else None
    if not record_id:
        raise InvalidRecordError(f"Cannot delete {object_name} record without an Id: {record!r}")
    return record_id


class SessionManager:
    """Lazily connects to Salesforce and memoizes sessions and describe calls.

    ``environment`` is ``"production"`` or ``"sandbox"`` (any case). The cache
    defaults to the process-wide one so separate managers share sessions; pass
    your own :class:`Cache` to isolate them.
    """

    def __init__(
        self,
        environment: str,
        *,
        cache: Optional[Cache] = None,
        provider: Optional[SessionProvider] = None,
    ) -> None:
        env = environment.lower() if isinstance(environment, str) else ""
        if env not in LOGIN_URLS:
            raise InvalidConfigurationError(environment)

        self.environment = env
        self.login_url = LOGIN_URLS[env]
        self.cache = cache if cache is not None else shared_cache()
        self.provider: SessionProvider = (
            provider if provider is not None else SimpleSalesforceProvider()
        )

    # --------------------------- Sessions ------------------------------

    def login(self, credential: Union[Credential, Mapping[str, str]]) -> LoginResult:
        """Return the session for credential.username, connecting on first use.

        The credential always becomes the current one. A username that already
        has a cached session gets that session back whatever password is given.
        """
        credential = Credential.from_mapping(credential)
        self.cache.set(CURRENT_CREDENTIALS, credential)

        key = session_key(credential.username)
        session = self.cache.get(key)
        if session is not None:
            _logger.debug("Reusing cached session for %s", credential.username)
            return LoginResult(session=session)
        return self._connect_once(key, credential)

    def _connect_once(self, key: str, credential: Credential) -> LoginResult:
        # One connect per username at a time for every manager on this cache.
        future, leader = self.cache.claim(key)
        if not leader:
            _logger.debug("Waiting on in-flight login for %s", credential.username)
            return future.result()

        try:
            session = self.cache.get(key)
            if session is not None:
                # another login finished between our lookup and the claim
                result = LoginResult(session=session)
            else:
                result = self._connect(key, credential)
        except BaseException as e:
            future.set_exception(e)
            raise
        finally:
            self.cache.release(key)

        future.set_result(result)
        return result

    def _connect(self, key: str, credential: Credential) -> LoginResult:
        try:
            session = self.provider.connect(self.login_url, credential)
        except ProviderError as e:
            _logger.error("Login failed for %s: %s", credential.username, e)
            return LoginResult(error=e)
        self.cache.set(key, session)
        return LoginResult(session=session)

    def logout(self, username: Optional[str] = None) -> None:
        """Forget the cached session so the next login connects again."""
        if username is None:
            username = self._current_credential().username
        self.cache.delete(session_key(username))
        _logger.info("Dropped cached session for %s", username)

    def _current_credential(self) -> Credential:
        credential = self.cache.get(CURRENT_CREDENTIALS)
        if credential is None:
            raise UnauthenticatedError("No credentials have been set; call login() first.")
        return credential

    def _session(self) -> Session:
        return self.login(self._current_credential()).unwrap()

    def get_login_url(self) -> str:
        """Frontdoor URL that opens the current user's session in a browser."""
        session = self._session()
        return f"{session.instance_url.rstrip('/')}{FRONTDOOR_PATH}{session.access_token}"

    # --------------------------- Describe ------------------------------

    def _memoized(self, key: str, fetch: Callable[[], Any]) -> Any:
        if self.cache.has(key):
            _logger.debug("Describe cache hit %s", key)
            return self.cache.get(key)
        _logger.debug("Describe cache miss %s", key)
        value = fetch()
        self.cache.set(key, value)
        return value

    def get_all_objects(self) -> List[Dict[str, Any]]:
        """Global describe: every sObject visible to the current user."""
        session = self._session()
        return self._memoized(
            f"objectList:{session.user_id}",
            lambda: self.provider.describe_global(session).get("sobjects", []),
        )

    def get_all_fields(self, object_name: str) -> List[Dict[str, Any]]:
        session = self._session()
        return self._memoized(
            f"objectFields:{object_name}:{session.user_id}",
            lambda: self.provider.describe(session, object_name).get("fields", []),
        )

    def describe_object(self, object_name: str) -> Dict[str, Any]:
        session = self._session()
        return self._memoized(
            f"objectInfo:{object_name}:{session.user_id}",
            lambda: self.provider.describe(session, object_name),
        )

    # --------------------------- Query ---------------------------------

    def query(self, soql: str) -> Dict[str, Any]:
        """Run a SOQL query. Never cached."""
        session = self._session()
        _logger.debug("SOQL: %s", soql)
        return self.provider.query(session, soql)

    def query_all(self, soql: str) -> List[Dict[str, Any]]:
        """Run a SOQL query and return the records from every page."""
        session = self._session()
        _logger.debug("SOQL (all pages): %s", soql)
        return self.provider.query_all(session, soql)

    # --------------------------- Mutations -----------------------------

    def insert(self, records: Records, object_name: str) -> Any:
        return self._save(
            "insert",
            object_name,
            records,
            lambda s, batch: self.provider.create(s, object_name, batch),
        )

    def update(self, records: Records, object_name: str) -> Any:
        return self._save(
            "update",
            object_name,
            records,
            lambda s, batch: self.provider.update(s, object_name, batch),
        )

    def upsert(self, records: Records, object_name: str, external_id_field: str) -> Any:
        return self._save(
            "upsert",
            object_name,
            records,
            lambda s, batch: self.provider.upsert(s, object_name, batch, external_id_field),
        )

    def delete(self, records: Union[str, Records, List[str]], object_name: str) -> Any:
        """Delete by id; records may be ids or dicts carrying an ``Id``."""

        def destroy(s: Session, batch: List[Any]) -> List[dict]:
            ids = [_record_id(r, object_name) for r in batch]
            return self.provider.destroy(s, object_name, ids)

        return self._save("delete", object_name, records, destroy)

    def _save(
        self,
        operation: str,
        object_name: str,
        records: Any,
        call: Callable[[Session, List[Any]], List[dict]],
    ) -> Any:
        session = self._session()
        single = isinstance(records, (str, Mapping))
        batch = [records] if single else list(records)
        if not batch:
            return []

        _logger.info("%s %d %s record(s)", operation, len(batch), object_name)
        results = call(session, batch)
        if len(results) != len(batch) or any(not r.get("success") for r in results):
            raise SaveError(operation, object_name, results)
        return results[0] if single else results
