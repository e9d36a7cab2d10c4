"""
Configuration loading and validation.
"""

from skynet_indexer.core.config import SkynetConfig, debug_enabled, get_config, validate_config


def test_defaults_are_valid(tmp_path):
    assert validate_config(SkynetConfig(db_path=str(tmp_path / "x.db"))) == []


def test_get_config_reads_environment(monkeypatch):
    monkeypatch.setenv("SKYNET_CONTRACT", "other.gpu")
    monkeypatch.setenv("PENDING_TTL_SEC", "60")
    monkeypatch.setenv("SWEEP_MODE", "both")
    monkeypatch.setenv("INGEST_API_ENABLED", "false")

    config = get_config()

    assert config.contract == "other.gpu"
    assert config.pending_ttl_sec == 60
    assert config.periodic_sweep and config.opportunistic_sweep
    assert config.ingest_api_enabled is False


def test_sweep_mode_flags():
    assert SkynetConfig(sweep_mode="opportunistic").periodic_sweep is False
    assert SkynetConfig(sweep_mode="periodic").opportunistic_sweep is False


def test_debug_enabled(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    assert debug_enabled() is False
    monkeypatch.setenv("DEBUG", "TRUE")
    assert debug_enabled() is True


def test_invalid_values_reported():
    config = SkynetConfig(
        sweep_mode="never",
        identity_source="guess",
        lookup_mode="scatter",
        pending_ttl_sec=0,
        pending_max_entries=-1,
        search_default_size=20,
        search_max_size=10,
        search_max_workers=0,
        search_lookup_timeout_sec=0,
    )

    issues = validate_config(config)

    assert len(issues) == 8
    assert "Invalid SWEEP_MODE: never" in issues


def test_api_prefix_shape():
    assert validate_config(SkynetConfig(api_prefix="/skynet")) == []
    assert validate_config(SkynetConfig(api_prefix="skynet"))
    assert validate_config(SkynetConfig(api_prefix="/skynet/"))


def test_periodic_interval_checked_only_when_periodic():
    assert validate_config(SkynetConfig(sweep_mode="opportunistic", sweep_interval_sec=0)) == []
    assert validate_config(SkynetConfig(sweep_mode="periodic", sweep_interval_sec=0)) == [
        "SWEEP_INTERVAL_SEC must be >= 1"
    ]
