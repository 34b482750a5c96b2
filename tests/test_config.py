"""Config loading: profile overlay, defaults, venue env resolution."""

from pathlib import Path

from predagg.config.settings import Settings, get_settings, load_config
from predagg.matching.similarity import DEFAULT_WEIGHTS, SimilarityWeights

REPO_CONFIG = Path(__file__).resolve().parents[1] / "config"


def _write(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


def test_profile_overlay_deep_merges(tmp_path):
    _write(
        tmp_path / "default.toml",
        '[gateway]\ntimeout_sec = 5.0\nmax_retries = 2\n\n[venues.polymarket]\nenabled = true\nbase_url = "https://a.test"\n',
    )
    _write(tmp_path / "dev.toml", "[gateway]\nmax_retries = 0\n\n[venues.polymarket]\nenabled = false\n")
    merged = load_config("dev", tmp_path)
    assert merged["gateway"] == {"timeout_sec": 5.0, "max_retries": 0}
    assert merged["venues"]["polymarket"] == {"enabled": False, "base_url": "https://a.test"}


def test_missing_profile_file_is_ignored(tmp_path):
    _write(tmp_path / "default.toml", "[cache]\nttl_sec = 3\n")
    settings = get_settings("nope", tmp_path)
    assert settings.cache_ttl_sec == 3.0


def test_defaults_without_config_file(tmp_path):
    settings = get_settings(config_dir=tmp_path)
    assert settings.timeout_sec == 7.0
    assert settings.max_retries == 2
    assert settings.stale_window_sec == 60.0
    assert (settings.default_limit, settings.min_limit, settings.max_limit) == (20, 5, 40)
    assert settings.rate_limit_requests == 30
    assert settings.enabled_venues == []
    assert settings.logging_level == "INFO"


def test_venue_reads_env(monkeypatch):
    monkeypatch.setenv("PREDAGG_TEST_KEY", "secret")
    monkeypatch.setenv("PREDAGG_TEST_URL", "https://override.test/")
    settings = Settings.from_dict(
        {
            "venues": {
                "opinion": {
                    "base_url": "https://default.test",
                    "api_key_env": "PREDAGG_TEST_KEY",
                    "base_url_env": "PREDAGG_TEST_URL",
                }
            }
        }
    )
    venue = settings.venue("opinion")
    assert venue.api_key == "secret"
    assert venue.base_url == "https://override.test"
    assert venue.enabled


def test_venue_without_env_keeps_defaults(monkeypatch):
    monkeypatch.delenv("PREDAGG_TEST_KEY", raising=False)
    settings = Settings.from_dict({"venues": {"opinion": {"api_key_env": "PREDAGG_TEST_KEY"}}})
    assert settings.venue("opinion").api_key is None
    assert settings.venue("unknown").base_url == ""


def test_repo_default_profile():
    settings = get_settings(config_dir=REPO_CONFIG)
    assert "polymarket" in settings.enabled_venues
    assert "mock" not in settings.enabled_venues
    assert SimilarityWeights.from_dict(settings.similarity_weights) == DEFAULT_WEIGHTS


def test_repo_dev_profile_is_offline():
    settings = get_settings("dev", REPO_CONFIG)
    assert settings.enabled_venues == ["mock"]
    assert settings.logging_level == "DEBUG"
