from quadro.core.config import DEFAULT_CORS_ORIGINS, Settings


def test_cors_origins_are_read_as_comma_separated(monkeypatch):
    monkeypatch.setenv("QUADRO_CORS_ORIGINS", "https://quadro.app, https://admin.quadro.app,")

    settings = Settings(_env_file=None)

    assert settings.cors_origins == ["https://quadro.app", "https://admin.quadro.app"]


def test_cors_origins_fall_back_to_local_frontend(monkeypatch):
    monkeypatch.setenv("QUADRO_CORS_ORIGINS", "null")

    assert Settings(_env_file=None).cors_origins == DEFAULT_CORS_ORIGINS


def test_default_columns_from_env(monkeypatch):
    monkeypatch.setenv("QUADRO_DEFAULT_COLUMNS", "A fazer,Fazendo,Feito")
    monkeypatch.setenv("QUADRO_FRONTEND_URL", "https://quadro.app/")

    settings = Settings(_env_file=None)

    assert settings.default_columns == ["A fazer", "Fazendo", "Feito"]
    assert settings.frontend_url == "https://quadro.app"
