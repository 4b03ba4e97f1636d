# tests/test_job_scout_config.py
import pytest

from modules.job_scout.lib.config import ConfigError, Settings


def test_defaults_in_dry_run():
    s = Settings.from_env_and_kwargs({"dry_run": True})
    assert s.query == "software developer"
    assert s.base_url == "https://seeker.worksourcewa.com/"
    assert s.max_pages == 2
    assert s.request_delay == 0.5
    assert s.max_concurrency == 25
    assert s.detail_parallelism == 25
    assert s.openai_model == "gpt-4.1-nano"
    assert s.use_id_cache is True
    assert s.job_ids_path is None


def test_env_overrides_defaults_and_kwargs_override_env(monkeypatch):
    monkeypatch.setenv("QUERY", "data engineer")
    monkeypatch.setenv("MAX_PAGES", "5")
    monkeypatch.setenv("API_DRY_RUN", "true")
    monkeypatch.setenv("USE_JOB_ID_FILE", "0")
    monkeypatch.setenv("JOB_IDS_PATH", "/tmp/ids.txt")

    s = Settings.from_env_and_kwargs({"max_pages": 3})
    assert s.query == "data engineer"
    assert s.max_pages == 3
    assert s.dry_run is True
    assert s.use_id_cache is False
    assert s.job_ids_path == "/tmp/ids.txt"


def test_base_url_gets_trailing_slash():
    s = Settings.from_env_and_kwargs({"dry_run": True, "base_url": "https://jobs.example.test"})
    assert s.base_url == "https://jobs.example.test/"


def test_api_key_required_unless_dry_run(monkeypatch):
    with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
        Settings.from_env_and_kwargs({})
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert Settings.from_env_and_kwargs({}).dry_run is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_pages": 0},
        {"max_concurrency": -1},
        {"detail_parallelism": 0},
        {"request_delay": -0.1},
        {"max_pages": "many"},
        {"query": "   "},
        {"base_url": "ftp://example.test/"},
        {"http_timeout": 0},
    ],
)
def test_invalid_settings_raise(kwargs):
    with pytest.raises(ConfigError):
        Settings.from_env_and_kwargs({"dry_run": True, **kwargs})


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)
