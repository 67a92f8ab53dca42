from app.core.config import Settings, parse_cors_origins


def test_parse_cors_origins_csv():
    value = "http://localhost:5173, http://localhost:3000"
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "http://localhost:3000",
    ]


def test_parse_cors_origins_json_list():
    value = '["http://localhost:5173", "https://bets.example.com"]'
    assert parse_cors_origins(value) == [
        "http://localhost:5173",
        "https://bets.example.com",
    ]


def test_parse_cors_origins_deduplicates():
    value = "http://localhost:5173,http://localhost:5173"
    assert parse_cors_origins(value) == ["http://localhost:5173"]


def test_parse_cors_origins_invalid_json_is_empty():
    assert parse_cors_origins("[not json") == []


def test_settings_read_env_case_insensitive(monkeypatch):
    monkeypatch.setenv("default_min_bet_amount", "2500")
    monkeypatch.setenv("ODDS_PROVIDER_REGIONS", "eu")
    settings = Settings()
    assert settings.default_min_bet_amount == 2500
    assert settings.odds_provider_regions == "eu"
    assert settings.default_max_bet_amount == 5_000_000
