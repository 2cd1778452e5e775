from pathlib import Path

from inkwell.settings import Settings, choose_env_file, get_settings, settings


def test_couchdb_url_uses_environment():
    s = Settings(
        COUCHDB_USERNAME="u",
        COUCHDB_PASSWORD="p",
        COUCHDB_HOST="h",
        COUCHDB_PORT=1234,
    )
    assert s.couchdb_url == "http://u:p@h:1234"


def test_is_production_is_case_insensitive():
    assert Settings(ENVIRONMENT="Production").is_production is True
    assert Settings(ENVIRONMENT="development").is_production is False


def test_defaults_match_upload_and_paging_rules():
    s = Settings()
    assert s.MEDIA_BACKEND == "disk"
    assert s.UPLOAD_URL_PREFIX == "/uploads"
    assert s.MAX_UPLOAD_BYTES == 5 * 1024 * 1024
    assert s.DEFAULT_PAGE_LIMIT == 10


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("COUCHDB_DATABASE", "blog_test")
    monkeypatch.setenv("AUTH_AUTHORIZED_PARTIES", '["http://localhost:5173"]')

    s = Settings()

    assert s.COUCHDB_DATABASE == "blog_test"
    assert s.AUTH_AUTHORIZED_PARTIES == ["http://localhost:5173"]


def test_get_settings_returns_global_instance():
    assert get_settings() is settings


def test_choose_env_file_prefers_env_local(monkeypatch):
    monkeypatch.setattr(Path, "exists", lambda self: str(self) == ".env.local")
    assert choose_env_file() == ".env.local"


def test_choose_env_file_falls_back(monkeypatch):
    monkeypatch.setattr(Path, "exists", lambda self: False)
    assert choose_env_file() == ".env"
