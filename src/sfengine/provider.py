"""
Session provider backed by simple-salesforce.

The SessionManager only talks to a provider through the methods of
:class:`SessionProvider`; :class:`SimpleSalesforceProvider` is the production
implementation and tests substitute a fake.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol
from urllib.parse import urlparse

import requests
from simple_salesforce import Salesforce
from simple_salesforce.exceptions import SalesforceError

from .exceptions import AuthenticationError, ProviderError
from .models import Credential, Session

_logger = logging.getLogger(__name__)

COLLECTIONS_PATH = "composite/sobjects"


class SessionProvider(Protocol):
    """What SessionManager needs from a Salesforce client."""

    def connect(self, login_url: str, credential: Credential) -> Session: ...

    def describe_global(self, session: Session) -> Dict[str, Any]: ...

    def describe(self, session: Session, object_name: str) -> Dict[str, Any]: ...

    def query(self, session: Session, soql: str) -> Dict[str, Any]: ...

    def query_all(self, session: Session, soql: str) -> List[Dict[str, Any]]: ...

    def create(self, session: Session, object_name: str, records: List[dict]) -> List[dict]: ...

    def update(self, session: Session, object_name: str, records: List[dict]) -> List[dict]: ...

    def upsert(
        self,
        session: Session,
        object_name: str,
        records: List[dict],
        external_id_field: str,
    ) -> List[dict]: ...

    def destroy(self, session: Session, object_name: str, ids: List[str]) -> List[dict]: ...


def domain_from_login_url(login_url: str) -> str:
    """Map https://login.salesforce.com/ to the simple-salesforce domain 'login'."""
    host = urlparse(login_url).hostname or ""
    if not host:
        raise ValueError(f"Login URL has no host: {login_url!r}")
    suffix = ".salesforce.com"
    return host[: -len(suffix)] if host.endswith(suffix) else host


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (SalesforceError, requests.RequestException) as e:
        _logger.error("Salesforce %s failed: %s", action, e)
        raise ProviderError(f"Salesforce {action} failed: {e}") from e


def _with_type(records: List[dict], object_name: str) -> List[dict]:
    """sObject Collections need attributes.type on every record."""
    out = []
    for rec in records:
        rec = dict(rec)
        rec.setdefault("attributes", {"type": object_name})
        out.append(rec)
    return out


class SimpleSalesforceProvider:
    """SessionProvider on top of simple_salesforce.Salesforce."""

    def __init__(
        self,
        api_version: Optional[str] = None,
        http_session: Optional[requests.Session] = None,
    ) -> None:
        self.api_version = api_version.lstrip("v") if api_version else None
        self.http_session = http_session or requests.Session()

    # --------------------------- Session -------------------------------

    def connect(self, login_url: str, credential: Credential) -> Session:
        domain = domain_from_login_url(login_url)
        kwargs: Dict[str, Any] = {
            "username": credential.username,
            "password": credential.password,
            "security_token": credential.security_token,
            "domain": domain,
            "session": self.http_session,
        }
        if self.api_version:
            kwargs["version"] = self.api_version

        _logger.info("Logging in to %s as %s", login_url, credential.username)
        try:
            sf = Salesforce(**kwargs)
            user_id = self._fetch_user_id(sf)
        except (SalesforceError, requests.RequestException, ValueError) as e:
            raise AuthenticationError(credential.username, str(e)) from e

        session = Session(
            instance_url=f"https://{sf.sf_instance}",
            access_token=sf.session_id,
            user_id=user_id,
            username=credential.username,
            client=sf,
        )
        _logger.info("Connected to Salesforce instance=%s user=%s", session.instance_url, user_id)
        return session

    def _fetch_user_id(self, sf: Salesforce) -> str:
        url = f"https://{sf.sf_instance}/services/oauth2/userinfo"
        r = self.http_session.get(url, headers=sf.headers, timeout=30.0)
        r.raise_for_status()
        payload = r.json()
        user_id = payload.get("user_id") if isinstance(payload, dict) else None
        if not user_id:
            raise ValueError(f"userinfo response has no user_id: {payload!r}")
        return user_id

    # --------------------------- Describe / query ----------------------

    def describe_global(self, session: Session) -> Dict[str, Any]:
        with _translate_errors("describeGlobal"):
            return session.client.describe()

    def describe(self, session: Session, object_name: str) -> Dict[str, Any]:
        with _translate_errors(f"describe {object_name}"):
            return session.client.restful(f"sobjects/{object_name}/describe") or {}

    def query(self, session: Session, soql: str) -> Dict[str, Any]:
        with _translate_errors("query"):
            return session.client.query(soql)

    def query_all(self, session: Session, soql: str) -> List[Dict[str, Any]]:
        with _translate_errors("queryAll"):
            return list(session.client.query_all(soql).get("records", []))

    # --------------------------- Mutations -----------------------------

    def create(self, session: Session, object_name: str, records: List[dict]) -> List[dict]:
        return self._collections(
            session, "create", COLLECTIONS_PATH, "POST", _with_type(records, object_name)
        )

    def update(self, session: Session, object_name: str, records: List[dict]) -> List[dict]:
        return self._collections(
            session, "update", COLLECTIONS_PATH, "PATCH", _with_type(records, object_name)
        )

    def upsert(
        self,
        session: Session,
        object_name: str,
        records: List[dict],
        external_id_field: str,
    ) -> List[dict]:
        path = f"{COLLECTIONS_PATH}/{object_name}/{external_id_field}"
        return self._collections(
            session, "upsert", path, "PATCH", _with_type(records, object_name)
        )

    def destroy(self, session: Session, object_name: str, ids: List[str]) -> List[dict]:
        params = {"ids": ",".join(ids), "allOrNone": "false"}
        _logger.debug("DELETE %s on %s (%d ids)", COLLECTIONS_PATH, object_name, len(ids))
        with _translate_errors(f"destroy {object_name}"):
            return session.client.restful(COLLECTIONS_PATH, params=params, method="DELETE") or []

    def _collections(
        self,
        session: Session,
        action: str,
        path: str,
        method: str,
        records: List[dict],
    ) -> List[dict]:
        body = {"allOrNone": False, "records": records}
        _logger.debug("%s %s (%d records)", method, path, len(records))
        with _translate_errors(action):
            return session.client.restful(path, method=method, data=json.dumps(body)) or []
