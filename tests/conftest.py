import threading
from collections import Counter

import pytest

from sfengine.cache import Cache, shared_cache
from sfengine.exceptions import AuthenticationError
from sfengine.models import Session


class FakeProvider:
    """In-memory SessionProvider that counts every call."""

    def __init__(self):
        self.calls = Counter()
        self.connect_args = []
        self.fail_logins = set()
        self.save_results = None
        self.connect_gate = None
        self.connect_entered = threading.Event()
        self.lock = threading.Lock()

    def _count(self, name):
        with self.lock:
            self.calls[name] += 1

    def connect(self, login_url, credential):
        self._count("connect")
        self.connect_args.append((login_url, credential))
        self.connect_entered.set()
        if self.connect_gate is not None:
            self.connect_gate.wait(timeout=5)
        if credential.username in self.fail_logins:
            raise AuthenticationError(credential.username, "INVALID_LOGIN")
        return Session(
            instance_url="https://example.my.salesforce.com",
            access_token=f"00DFAKE!{credential.username}",
            user_id=f"005{credential.username}",
            username=credential.username,
        )

    def describe_global(self, session):
        self._count("describe_global")
        return {
            "sobjects": [
                {"name": "Account", "queryable": True},
                {"name": "Contact", "queryable": True},
                {"name": "AuditTrail", "queryable": False},
            ]
        }

    def describe(self, session, object_name):
        self._count("describe")
        return {
            "name": object_name,
            "label": object_name,
            "fields": [
                {"name": "Id", "type": "id", "label": f"{object_name} ID"},
                {"name": "Name", "type": "string", "label": f"{object_name} Name"},
            ],
        }

    def query(self, session, soql):
        self._count("query")
        return {
            "totalSize": 1,
            "done": True,
            "records": [{"attributes": {"type": "Account"}, "Id": "001", "Name": "Acme Corp"}],
        }

    def query_all(self, session, soql):
        self._count("query_all")
        return [{"Id": "001", "Name": "Acme Corp"}, {"Id": "002", "Name": "Globex"}]

    def _results(self, n):
        if self.save_results is not None:
            return self.save_results
        return [{"id": f"001{i:03d}", "success": True, "errors": []} for i in range(n)]

    def create(self, session, object_name, records):
        self._count("create")
        self.last_records = records
        return self._results(len(records))

    def update(self, session, object_name, records):
        self._count("update")
        self.last_records = records
        return self._results(len(records))

    def upsert(self, session, object_name, records, external_id_field):
        self._count("upsert")
        self.last_records = records
        self.last_external_id = external_id_field
        return self._results(len(records))

    def destroy(self, session, object_name, ids):
        self._count("destroy")
        self.last_records = ids
        return self._results(len(ids))


@pytest.fixture(autouse=True)
def clean_shared_cache():
    """The process-wide cache must not leak sessions between tests."""
    shared_cache().clear()
    yield
    shared_cache().clear()


@pytest.fixture
def cache():
    return Cache()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def manager(cache, provider):
    from sfengine.engine import SessionManager

    return SessionManager("production", cache=cache, provider=provider)


@pytest.fixture
def logged_in(manager):
    manager.login({"username": "a", "password": "p"})
    return manager


@pytest.fixture
def cli_provider(monkeypatch, provider):
    """Point the CLI at a FakeProvider with credentials in the environment."""
    monkeypatch.setenv("SF_USERNAME", "a")
    monkeypatch.setenv("SF_PASSWORD", "p")
    monkeypatch.delenv("SF_ENVIRONMENT", raising=False)
    monkeypatch.delenv("SF_API_VERSION", raising=False)
    monkeypatch.setattr(
        "sfengine.cli.SimpleSalesforceProvider", lambda api_version=None: provider
    )
    return provider
