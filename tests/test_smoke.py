def test_import_app(monkeypatch):
    # Minimal env for Settings() to load during import.
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("MINIO_ENABLED", "0")
    monkeypatch.setenv("ENSURE_EXTERNAL_DEPS_ON_STARTUP", "0")

    import mindbank.main

    paths = {r.path for r in mindbank.main.app.routes}
    assert {"/health", "/session", "/capture/start", "/items", "/books", "/audio/speak"} <= paths
