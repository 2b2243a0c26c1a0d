import pytest

from core.room_manager import RoomManager
from core.player_registry import PlayerRegistry
from core.exceptions import (
    RoomNotFound,
    RoomNotAcceptingPlayers,
    RoomFull,
    DuplicatePlayerName,
    PlayerNotFound,
    ConflictError
)
from models import Player, Room


def test_join_room(db):
    room, host = RoomManager.create_room(db, "Ava", "🙂")

    player = PlayerRegistry.join_room(db, room.code.lower(), "Ben", "😎")

    assert player.room_id == room.id
    assert player.ready is False
    assert player.last_seen > 0
    assert [p.id for p in PlayerRegistry.list_players(db, room.id)] == [host.id, player.id]


def test_join_unknown_room(db):
    with pytest.raises(RoomNotFound):
        PlayerRegistry.join_room(db, "NOPE00", "Ben", "😎")


def test_join_full_room(db, lobby):
    with pytest.raises(RoomFull) as exc_info:
        PlayerRegistry.join_room(db, lobby.code, "Cid", "🤠")

    assert isinstance(exc_info.value, ConflictError)
    assert db.query(Player).filter(Player.room_id == lobby.room_id).count() == 2


def test_join_with_duplicate_name(db):
    room, _ = RoomManager.create_room(db, "Ava", "🙂")

    with pytest.raises(DuplicatePlayerName):
        PlayerRegistry.join_room(db, room.code, "Ava", "😎")

    assert db.query(Player).filter(Player.room_id == room.id).count() == 1


def test_join_after_game_started(db, started):
    with pytest.raises(RoomNotAcceptingPlayers):
        PlayerRegistry.join_room(db, started.code, "Cid", "🤠")


def test_set_ready_is_last_write_wins(db, lobby):
    PlayerRegistry.set_ready(db, lobby.guest_id, True)
    PlayerRegistry.set_ready(db, lobby.guest_id, True)
    assert PlayerRegistry.get_player(db, lobby.guest_id).ready is True

    PlayerRegistry.set_ready(db, lobby.guest_id, False)
    assert PlayerRegistry.get_player(db, lobby.guest_id).ready is False


def test_set_ready_unknown_player(db):
    with pytest.raises(PlayerNotFound):
        PlayerRegistry.set_ready(db, "missing", True)


def test_heartbeat_updates_last_seen(db, lobby):
    PlayerRegistry.heartbeat(db, lobby.guest_id, now=1_000)
    assert PlayerRegistry.get_player(db, lobby.guest_id).last_seen == 1_000

    PlayerRegistry.heartbeat(db, lobby.guest_id)
    assert PlayerRegistry.get_player(db, lobby.guest_id).last_seen > 1_000


def test_heartbeat_does_not_bump_state_version(db, lobby):
    before = db.query(Room).filter(Room.id == lobby.room_id).one().state_version
    PlayerRegistry.heartbeat(db, lobby.host_id)
    after = db.query(Room).filter(Room.id == lobby.room_id).one().state_version
    assert after == before


def test_heartbeat_unknown_player(db):
    with pytest.raises(PlayerNotFound):
        PlayerRegistry.heartbeat(db, "missing")


def test_mutations_bump_state_version(db):
    room, host = RoomManager.create_room(db, "Ava", "🙂")
    assert RoomManager.get_room_by_id(db, room.id).state_version == 0

    guest = PlayerRegistry.join_room(db, room.code, "Ben", "😎")
    assert RoomManager.get_room_by_id(db, room.id).state_version == 1

    PlayerRegistry.set_ready(db, guest.id, True)
    assert RoomManager.get_room_by_id(db, room.id).state_version == 2
