from config import AppSettings, DEFAULT_API_URL


def test_missing_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("DOCINSIGHT_API_URL", raising=False)
    target = tmp_path / "settings.json"

    loaded = AppSettings.load(target)

    assert loaded.api.base_url == DEFAULT_API_URL
    assert loaded.api.timeout == 60.0
    assert loaded.api.podcast_timeout == 300.0
    assert not target.exists()


def test_round_trip(tmp_path, monkeypatch):
    monkeypatch.delenv("DOCINSIGHT_API_URL", raising=False)
    target = tmp_path / "settings.json"
    original = AppSettings()
    original.api.base_url = "http://example.org/api/v1"
    original.viewer.default_zoom = "page-fit"
    original.log_level = "DEBUG"

    original.save(target)

    assert AppSettings.load(target) == original


def test_malformed_file_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("DOCINSIGHT_API_URL", raising=False)
    target = tmp_path / "settings.json"
    target.write_text("{ not json", encoding="utf-8")

    assert AppSettings.load(target) == AppSettings()


def test_unknown_keys_fall_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("DOCINSIGHT_API_URL", raising=False)
    target = tmp_path / "settings.json"
    target.write_text('{"api": {"endpoint": "x"}}', encoding="utf-8")

    assert AppSettings.load(target).api.base_url == DEFAULT_API_URL


def test_environment_overrides_backend_url(tmp_path, monkeypatch):
    monkeypatch.setenv("DOCINSIGHT_API_URL", "http://staging:9000/api/v1")
    target = tmp_path / "settings.json"
    AppSettings().save(target)

    assert AppSettings.load(target).api.base_url == "http://staging:9000/api/v1"


def test_hidden_viewer_toolbar_persists(tmp_path, monkeypatch):
    monkeypatch.delenv("DOCINSIGHT_API_URL", raising=False)
    target = tmp_path / "settings.json"
    original = AppSettings()
    original.viewer.show_toolbar = False

    original.save(target)

    assert AppSettings.load(target).viewer.show_toolbar is False
