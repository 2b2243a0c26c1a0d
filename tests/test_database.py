import pytest

from database import Settings, transactional
from core.exceptions import RoomFull
from models import EventLog


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("TOTAL_ROUNDS", raising=False)
    settings = Settings(_env_file=None)

    assert settings.total_rounds == 10
    assert settings.presence_timeout_sec == 20
    assert settings.heartbeat_interval_sec == 10
    assert settings.room_ttl_hours == 0
    assert Settings.model_config["env_file"] == ".env"


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("TOTAL_ROUNDS", "7")
    monkeypatch.setenv("ROOM_TTL_HOURS", "24")

    settings = Settings(_env_file=None)

    assert settings.total_rounds == 7
    assert settings.room_ttl_hours == 24


@transactional
def _log_event(db, room_id, fail_with=None):
    db.add(EventLog(room_id=room_id, event_type="TEST", data={}))
    if fail_with is not None:
        raise fail_with
    return room_id


def test_transactional_commits(db, lobby):
    _log_event(db, lobby.room_id)

    db.expire_all()
    assert db.query(EventLog).filter(EventLog.event_type == "TEST").count() == 1


@pytest.mark.parametrize("error", [RoomFull("full"), RuntimeError("boom")])
def test_transactional_rolls_back_and_reraises(db, lobby, error):
    with pytest.raises(type(error)):
        _log_event(db, lobby.room_id, fail_with=error)

    assert db.query(EventLog).filter(EventLog.event_type == "TEST").count() == 0


def test_transactional_requires_session():
    with pytest.raises(ValueError):
        _log_event("not-a-session", "room")
