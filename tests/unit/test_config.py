import pytest

from sfengine.config import SFConfig
from sfengine.exceptions import MissingCredentialsError
from sfengine.models import Credential

_VARS = ["SF_ENVIRONMENT", "SF_USERNAME", "SF_PASSWORD", "SF_SECURITY_TOKEN", "SF_API_VERSION"]


def test_sfconfig_from_env(monkeypatch):
    """Ensure SFConfig.from_env reads the username/password variables."""
    monkeypatch.setenv("SF_ENVIRONMENT", "sandbox")
    monkeypatch.setenv("SF_USERNAME", "a@example.com")
    monkeypatch.setenv("SF_PASSWORD", "pw")
    monkeypatch.setenv("SF_SECURITY_TOKEN", "tok")
    monkeypatch.setenv("SF_API_VERSION", "v60.0")

    cfg = SFConfig.from_env()

    assert cfg.environment == "sandbox"
    assert cfg.username == "a@example.com"
    assert cfg.password == "pw"
    assert cfg.security_token == "tok"
    assert cfg.api_version == "v60.0"
    assert cfg.credential() == Credential("a@example.com", "pw", "tok")


def test_sfconfig_defaults(monkeypatch):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)

    cfg = SFConfig.from_env()

    assert cfg.environment == "production"
    assert cfg.username is None
    assert cfg.security_token == ""
    assert cfg.api_version is None


def test_credential_lists_missing_vars():
    with pytest.raises(MissingCredentialsError) as excinfo:
        SFConfig(username="a").credential()
    assert excinfo.value.missing == ["SF_PASSWORD"]

    with pytest.raises(MissingCredentialsError) as excinfo:
        SFConfig().credential()
    assert excinfo.value.missing == ["SF_USERNAME", "SF_PASSWORD"]
    assert "SF_USERNAME" in str(excinfo.value)


def test_password_not_in_repr():
    cfg = SFConfig(username="a", password="secret", security_token="tok")
    assert "secret" not in repr(cfg)
    assert "secret" not in repr(cfg.credential())
