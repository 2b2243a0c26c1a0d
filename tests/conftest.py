import os
import sys
from types import SimpleNamespace

# 不要在工作目錄留下 sqlite 檔；測試各自用 tmp_path 的資料庫
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Ensure the project root (containing main.py / core / services) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base, get_db
import models  # noqa: F401
from main import app
from core.room_manager import RoomManager
from core.player_registry import PlayerRegistry

QUESTION_IDS = [f"q{i}" for i in range(10)]


@pytest.fixture()
def engine(tmp_path):
    # 檔案型 sqlite：多個 thread / session 可以共用
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'match_game_test.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def lobby(db):
    """房間 + Host(Ava) + Ben，都還沒準備"""
    room, host = RoomManager.create_room(db, "Ava", "🙂")
    guest = PlayerRegistry.join_room(db, room.code, "Ben", "😎")
    return SimpleNamespace(
        room_id=room.id,
        code=room.code,
        host_id=host.id,
        guest_id=guest.id
    )


@pytest.fixture()
def started(db, lobby):
    """已開始的房間（第 0 回合）"""
    PlayerRegistry.set_ready(db, lobby.host_id, True)
    PlayerRegistry.set_ready(db, lobby.guest_id, True)
    RoomManager.start_game(db, lobby.room_id, "soft-sweet-visual", QUESTION_IDS)
    return lobby
