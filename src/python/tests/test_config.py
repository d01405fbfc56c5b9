import pytest

from fluenthttp.config import DEFAULT_USER_AGENT, HttpConfig


def test_defaults():
    config = HttpConfig()
    assert config.max_redirects == 10
    assert config.encoding == "utf-8"
    assert config.user_agent == DEFAULT_USER_AGENT
    assert config.connect_timeout is None
    assert config.read_timeout is None


def test_negative_max_redirects_rejected():
    with pytest.raises(ValueError):
        HttpConfig(max_redirects=-1)


def test_from_env(monkeypatch):
    monkeypatch.setenv("FLUENTHTTP_MAX_REDIRECTS", "3")
    monkeypatch.setenv("FLUENTHTTP_ENCODING", "latin-1")
    monkeypatch.setenv("FLUENTHTTP_USER_AGENT", "tests/1.0")
    monkeypatch.setenv("FLUENTHTTP_CONNECT_TIMEOUT", "1.5")
    monkeypatch.setenv("FLUENTHTTP_READ_TIMEOUT", "")

    config = HttpConfig.from_env()

    assert config.max_redirects == 3
    assert config.encoding == "latin-1"
    assert config.user_agent == "tests/1.0"
    assert config.connect_timeout == 1.5
    assert config.read_timeout is None


def test_from_env_empty_user_agent_disables_it(monkeypatch):
    monkeypatch.setenv("FLUENTHTTP_USER_AGENT", "")
    assert HttpConfig.from_env().user_agent is None


def test_from_env_without_variables_matches_defaults(monkeypatch):
    for name in ("MAX_REDIRECTS", "ENCODING", "USER_AGENT", "CONNECT_TIMEOUT", "READ_TIMEOUT"):
        monkeypatch.delenv(f"FLUENTHTTP_{name}", raising=False)
    assert HttpConfig.from_env() == HttpConfig()


def test_from_env_bad_timeout(monkeypatch):
    monkeypatch.setenv("FLUENTHTTP_READ_TIMEOUT", "soon")
    with pytest.raises(ValueError, match="FLUENTHTTP_READ_TIMEOUT"):
        HttpConfig.from_env()
