import os

from courtbook.core import config
from courtbook.core.config import Settings, env_flag, load_env


def test_defaults():
    settings = Settings()
    assert settings.lock_ttl_minutes == 10
    assert settings.no_show_grace_minutes == 15
    assert settings.checkout_grace_minutes == 15
    assert settings.no_show_penalty == 100
    assert settings.late_checkout_penalty == 50
    assert settings.require_approval is False
    assert settings.payments_sandbox is True


def test_from_env_reads_overrides(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "ENV_PATH", str(tmp_path / "missing.env"))
    monkeypatch.setenv("REQUIRE_APPROVAL", "true")
    monkeypatch.setenv("LOCK_TTL_MINUTES", "5")
    monkeypatch.setenv("NO_SHOW_PENALTY", "80")
    monkeypatch.setenv("PAYMENTS_SANDBOX", "no")
    monkeypatch.setenv("DB_PORT", "5432")

    settings = Settings.from_env()

    assert settings.require_approval is True
    assert settings.lock_ttl_minutes == 5
    assert settings.no_show_penalty == 80
    assert settings.payments_sandbox is False
    assert settings.db_port == 5432


def test_load_env_does_not_override(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("# local\nCOURTBOOK_A=from_file\nCOURTBOOK_B = spaced \n\nnot a pair\n", encoding="utf-8")
    monkeypatch.setenv("COURTBOOK_A", "from_shell")
    monkeypatch.delenv("COURTBOOK_B", raising=False)

    load_env(str(env_file))

    assert os.environ["COURTBOOK_A"] == "from_shell"
    assert os.environ["COURTBOOK_B"] == "spaced"
    monkeypatch.delenv("COURTBOOK_B")


def test_env_flag(monkeypatch):
    monkeypatch.setenv("COURTBOOK_FLAG", "Yes")
    assert env_flag("COURTBOOK_FLAG", "false") is True
    monkeypatch.delenv("COURTBOOK_FLAG")
    assert env_flag("COURTBOOK_FLAG", "false") is False
