"""Tests for configuration loading."""
import pytest

from contractwatch.core.config import (
    AppConfig,
    BrowserConfig,
    BrowserMode,
    ConfigError,
    NotifierConfig,
    ScheduleConfig,
    TimingProfile,
    load_app_config,
    validate_config_file,
)


def test_missing_file_gives_defaults(tmp_path):
    """A missing config file yields the default configuration."""
    config = load_app_config(tmp_path / "absent.yaml")

    assert config.portal.cpv_code == "32351200"
    assert config.portal.allowed_statuses == ["Publicada", "Evaluación Previa"]
    assert config.browser.mode is BrowserMode.HEADLESS
    assert config.enhance_documents


def test_load_yaml_with_env_expansion(tmp_path, monkeypatch):
    """${VAR} and ${VAR:-default} are expanded from the environment."""
    monkeypatch.setenv("CW_DB", "sqlite:///tmp/test.db")
    monkeypatch.delenv("CW_HOST", raising=False)
    path = tmp_path / "app.yaml"
    path.write_text(
        "database:\n"
        "  url: ${CW_DB}\n"
        "notifier:\n"
        "  smtp_host: ${CW_HOST:-smtp.fallback.test}\n"
        "  to_emails: a@test, b@test\n",
        encoding="utf-8",
    )

    config = load_app_config(path)

    assert config.database.url == "sqlite:///tmp/test.db"
    assert config.notifier.smtp_host == "smtp.fallback.test"
    assert config.notifier.to_emails == ["a@test", "b@test"]


def test_invalid_yaml_raises(tmp_path):
    """Malformed YAML is a configuration error."""
    path = tmp_path / "app.yaml"
    path.write_text("browser: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        load_app_config(path)

    assert exc_info.value.path == path


def test_invalid_values_raise(tmp_path):
    """Values failing validation are reported with details."""
    path = tmp_path / "app.yaml"
    path.write_text("browser:\n  browser: netscape\n", encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        load_app_config(path)

    assert "browser" in exc_info.value.details


def test_validate_config_file(tmp_path):
    """Validation returns messages instead of raising."""
    good = tmp_path / "good.yaml"
    good.write_text("enhance_documents: false\n", encoding="utf-8")
    bad = tmp_path / "bad.yaml"
    bad.write_text("schedule:\n  interval_minutes: 1\n", encoding="utf-8")

    assert validate_config_file(good) == []
    assert validate_config_file(bad)


def test_timing_follows_browser_mode():
    """Visible browsers get the slower timing profile."""
    visible = BrowserConfig(headless=False)

    assert visible.mode is BrowserMode.VISIBLE
    assert visible.effective_timing == TimingProfile.visible()
    assert BrowserConfig().effective_timing == TimingProfile.headless()
    assert TimingProfile.visible().per_key_delay_ms > TimingProfile.headless().per_key_delay_ms


def test_explicit_timing_overrides_mode():
    """An explicit timing profile wins over the mode default."""
    timing = TimingProfile(form_load_settle=1)
    assert BrowserConfig(headless=False, timing=timing).effective_timing is timing


def test_notifier_reads_environment(monkeypatch):
    """Notifier defaults come from the SMTP environment variables."""
    monkeypatch.setenv("SMTP_HOST", "smtp.env.test")
    monkeypatch.setenv("SMTP_PORT", "2525")
    monkeypatch.setenv("FROM_EMAIL", "from@env.test")
    monkeypatch.setenv("TO_EMAIL", "one@env.test, two@env.test")

    config = NotifierConfig()

    assert config.smtp_host == "smtp.env.test"
    assert config.smtp_port == 2525
    assert config.to_emails == ["one@env.test", "two@env.test"]
    assert config.is_configured


def test_cron_expression_needs_five_fields():
    """Crontab expressions are validated."""
    with pytest.raises(ValueError):
        ScheduleConfig(schedule_type="cron", cron_expression="0 8 * *")

    assert ScheduleConfig(schedule_type="cron", cron_expression="0 8 * * 1-5").cron_expression


def test_ensure_directories(tmp_path):
    """Data, screenshot and log directories are created."""
    config = AppConfig(
        data_dir=tmp_path / "data",
        browser=BrowserConfig(screenshots_path=tmp_path / "shots"),
        logging={"file": tmp_path / "logs" / "cw.log"},
    )
    config.ensure_directories()

    assert (tmp_path / "data").is_dir()
    assert (tmp_path / "shots").is_dir()
    assert (tmp_path / "logs").is_dir()
