from gasless.config import Settings


def test_sponsor_api_key_legacy_fallback(monkeypatch):
    """API key should load from the old frontend variable when nothing else is set."""

    monkeypatch.delenv("SPONSOR_API_KEY", raising=False)
    monkeypatch.delenv("PIMLICO_API_KEY", raising=False)
    monkeypatch.setenv("REACT_APP_PIMLICO_API_KEY", "alias-from-legacy")

    settings = Settings()

    assert settings.sponsor_api_key == "alias-from-legacy"
    assert settings.has_sponsor_key is True


def test_sponsor_api_key_direct_env(monkeypatch):
    """Environment-provided Pimlico key remains the primary source."""

    monkeypatch.delenv("SPONSOR_API_KEY", raising=False)
    monkeypatch.setenv("PIMLICO_API_KEY", "primary-key")
    monkeypatch.setenv("REACT_APP_PIMLICO_API_KEY", "alias-from-legacy")

    settings = Settings()

    assert settings.sponsor_api_key == "primary-key"


def test_defaults(monkeypatch):
    monkeypatch.delenv("SPONSORSHIP_POLICY_ID", raising=False)
    monkeypatch.delenv("FEE_TIER", raising=False)

    settings = Settings()

    assert settings.sponsorship_policy_id == "sp_dry_dreaming_celestial"
    assert settings.fee_tier == "fast"
    assert settings.sponsor_base_url == "https://api.pimlico.io/v2"
