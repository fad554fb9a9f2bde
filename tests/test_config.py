import pytest

from sosdash.config import Settings


def test_defaults(monkeypatch):
    for name in ("SOSDASH_API_URL", "SOSDASH_PAGE_SIZE", "SOSDASH_REQUEST_TIMEOUT_S", "SOSDASH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    s = Settings.from_env()
    assert s.api_url == "https://floodsupport.org/api/sos"
    assert s.page_size == 100
    assert s.request_timeout_s == 30


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SOSDASH_API_URL", "http://localhost:8000/api/sos")
    monkeypatch.setenv("SOSDASH_PAGE_SIZE", "250")
    monkeypatch.setenv("SOSDASH_LOG_LEVEL", "debug")
    s = Settings.from_env()
    assert s.api_url == "http://localhost:8000/api/sos"
    assert s.page_size == 250
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["ten", "0", "-5"])
def test_bad_integers_are_rejected(monkeypatch, value):
    monkeypatch.setenv("SOSDASH_PAGE_SIZE", value)
    with pytest.raises(RuntimeError):
        Settings.from_env()
