from __future__ import annotations

from aria.core.config import DEFAULT_SCOPES, Settings, _clean, load_env


def test_clean_strips_quotes_and_whitespace():
    assert _clean(' "abc" ') == "abc"
    assert _clean("'xyz'") == "xyz"
    assert _clean("  ") is None
    assert _clean(None) is None


def test_missing_credentials():
    s = Settings(fitbit_client_id=None, fitbit_client_secret=None)
    assert s.missing_credentials() == ["FITBIT_CLIENT_ID", "FITBIT_CLIENT_SECRET"]
    s = Settings(fitbit_client_id="id", fitbit_client_secret="secret")
    assert s.missing_credentials() == []


def test_defaults():
    s = Settings()
    assert s.api_base_url == "https://api.fitbit.com"
    assert s.authorize_url == "https://www.fitbit.com/oauth2/authorize"
    assert set(DEFAULT_SCOPES) >= {"weight", "profile"}


def test_load_env_reads_dotenv_file(tmp_path, monkeypatch):
    for name in ("FITBIT_CLIENT_ID", "FITBIT_CLIENT_SECRET"):
        # register the variable so monkeypatch removes whatever the file sets
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text('FITBIT_CLIENT_ID="from-dotenv"\nFITBIT_CLIENT_SECRET=shh\n')

    assert load_env(env_file) is True
    s = Settings()

    assert s.fitbit_client_id == "from-dotenv"
    assert s.fitbit_client_secret == "shh"
    assert s.missing_credentials() == []


def test_real_environment_wins_over_dotenv(tmp_path, monkeypatch):
    monkeypatch.setenv("FITBIT_CLIENT_ID", "from-env")
    env_file = tmp_path / ".env"
    env_file.write_text("FITBIT_CLIENT_ID=from-dotenv\n")

    load_env(env_file)

    assert Settings().fitbit_client_id == "from-env"
