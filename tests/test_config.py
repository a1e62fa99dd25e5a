import pytest

from edutrack.config import Settings


def test_admin_allow_list_accepts_comma_separated_values(monkeypatch):
    monkeypatch.setenv("EDUTRACK_ADMIN_EMAILS", "head@school.test, deputy@school.test")
    monkeypatch.setenv("EDUTRACK_ADMIN_DOMAINS", "staff.school.test")

    settings = Settings(_env_file=None)

    assert settings.admin_emails == ["head@school.test", "deputy@school.test"]
    assert settings.admin_domains == ["staff.school.test"]


def test_admin_allow_list_accepts_json_array(monkeypatch):
    monkeypatch.setenv("EDUTRACK_ADMIN_EMAILS", '["head@school.test"]')
    monkeypatch.delenv("EDUTRACK_ADMIN_DOMAINS", raising=False)

    settings = Settings(_env_file=None)

    assert settings.admin_emails == ["head@school.test"]
    assert settings.admin_domains == []


@pytest.mark.parametrize("raw", ["", " , "])
def test_empty_allow_list(monkeypatch, raw):
    monkeypatch.setenv("EDUTRACK_ADMIN_EMAILS", raw)
    assert Settings(_env_file=None).admin_emails == []
