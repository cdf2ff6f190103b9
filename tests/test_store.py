from pathlib import Path

import pytest

from mindmapper.store import LocalStore, SessionSettings, get_data_dir, get_db_path


def test_settings_round_trip(store: LocalStore) -> None:
    assert store.get_setting("missing", "fallback") == "fallback"

    store.set_setting("zoom", {"level": 2})
    assert store.get_setting("zoom") == {"level": 2}

    store.delete_setting("zoom")
    assert store.get_setting("zoom") is None


def test_state_requires_nodes(store: LocalStore) -> None:
    assert store.load_state() is None

    store.save_state({"nodes": [], "connections": []})
    assert store.load_state() is None

    document = {"nodes": [{"x": 0, "y": 0}], "connections": []}
    store.save_state(document)
    assert store.load_state() == document

    store.clear_state()
    assert store.load_state() is None


def test_state_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "map.db"
    first = LocalStore(path)
    first.save_state({"nodes": [{"x": 1, "y": 2}]})
    first.close()

    second = LocalStore(path)
    try:
        assert second.load_state() == {"nodes": [{"x": 1, "y": 2}]}
    finally:
        second.close()


def test_unreadable_value_falls_back(store: LocalStore) -> None:
    store.conn.execute("INSERT INTO settings (key, value) VALUES (?, ?)", ("broken", "{oops"))
    store.conn.commit()

    assert store.get_setting("broken", 7) == 7


def test_session_settings_round_trip(store: LocalStore) -> None:
    assert store.get_session_settings() == SessionSettings()

    store.set_session_settings(SessionSettings(history_size=4, autosave=False))

    settings = store.get_session_settings()
    assert settings.history_size == 4
    assert not settings.autosave


def test_session_settings_ignore_unknown_keys() -> None:
    settings = SessionSettings.from_json('{"history_size": 5, "theme": "dark"}')

    assert settings == SessionSettings(history_size=5)
    assert SessionSettings.from_json("not json") == SessionSettings()
    assert SessionSettings.from_json(None) == SessionSettings()


def test_data_dir_can_be_overridden(tmp_path: Path, monkeypatch) -> None:
    target = tmp_path / "data"
    monkeypatch.setenv("MINDMAPPER_DATA_DIR", str(target))

    assert get_data_dir() == target
    assert target.is_dir()
    assert get_db_path() == target / "mindmapper.db"


def test_default_store_uses_data_dir(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("MINDMAPPER_DATA_DIR", str(tmp_path))

    store = LocalStore()
    try:
        assert store.db_path == tmp_path / "mindmapper.db"
    finally:
        store.close()
    assert (tmp_path / "mindmapper.db").exists()


@pytest.mark.parametrize("raw", [
    '{"history_size": 0}',
    '{"history_size": -3}',
    '{"history_size": "abc"}',
    '{"history_size": true}',
])
def test_session_settings_reject_bad_history_size(raw: str) -> None:
    assert SessionSettings.from_json(raw).history_size == 10


def test_session_settings_reset_bad_fields_individually() -> None:
    settings = SessionSettings.from_json(
        '{"history_size": 4, "autosave": "no", "background": 7}'
    )

    assert settings == SessionSettings(history_size=4)
