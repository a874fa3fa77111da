from dealflow.config import Settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///pipeline.db")
    monkeypatch.setenv("EMAIL_SMTP_URL", "smtp://mailer.internal:587")
    monkeypatch.setenv("EMAIL_FROM", "ops@fund.example")
    monkeypatch.setenv("MANUAL_INTRODUCTION_CONVICTION", "4")

    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite:///pipeline.db"
    assert settings.manual_introduction_conviction == 4
    assert settings.smtp_enabled is True


def test_settings_carry_only_pipeline_concerns(monkeypatch):
    monkeypatch.delenv("EMAIL_SMTP_URL", raising=False)
    fields = set(Settings.model_fields)
    assert {"secret_key", "host", "port"}.isdisjoint(fields)
    assert Settings(_env_file=None).smtp_enabled is False
