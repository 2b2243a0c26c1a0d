"""
Player Registry：加入房間、準備狀態、heartbeat

- 每個房間最多 2 位玩家
- 同房間內名稱不可重複
- 房間離開 LOBBY 後不再接受加入
- 離線玩家不會被移除（presence 只是推導值）
"""
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import transactional
from models import Player, RoomStatus, EventLog, now_ms
from core.room_manager import RoomManager, PLAYERS_PER_ROOM
from core.locks import with_room_lock, room_guard, serialized_by_room
from core.exceptions import (
    RoomNotFound,
    RoomNotAcceptingPlayers,
    RoomFull,
    DuplicatePlayerName,
    PlayerNotFound
)
from services.state_service import bump_state_version

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """玩家管理"""

    @staticmethod
    def join_room(db: Session, code: str, name: str, avatar: str) -> Player:
        """
        透過房間代碼加入房間

        前置條件：
        - 房間必須存在
        - 房間狀態必須是 LOBBY
        - 房間內玩家少於 2 人
        - 名稱未被房間內其他玩家使用

        返回：
            新建立的 Player（ready=False）

        異常：
            RoomNotFound / RoomNotAcceptingPlayers / RoomFull / DuplicatePlayerName
        """
        room = RoomManager.get_room_by_code(db, code)
        return PlayerRegistry._add_player(db, room.id, name, avatar)

    @staticmethod
    @serialized_by_room
    @transactional
    def _add_player(db: Session, room_id: str, name: str, avatar: str) -> Player:
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

        if room.status != RoomStatus.LOBBY:
            raise RoomNotAcceptingPlayers(
                f"Room {room.code} is not accepting players "
                f"(status: {RoomStatus(room.status).value})"
            )

        existing = db.query(Player).filter(Player.room_id == room_id).all()
        if len(existing) >= PLAYERS_PER_ROOM:
            raise RoomFull(f"Room {room.code} is full")

        if any(p.name == name for p in existing):
            raise DuplicatePlayerName(f"Name {name!r} is already taken in room {room.code}")

        now = now_ms()
        player = Player(
            room_id=room_id,
            name=name,
            avatar=avatar,
            ready=False,
            last_seen=now,
            joined_at=now
        )
        db.add(player)
        db.flush()

        db.add(EventLog(
            room_id=room_id,
            event_type="PLAYER_JOINED",
            data={"player_id": player.id, "name": name}
        ))
        bump_state_version(db, room, reason="player_joined")

        logger.info(f"Player {player.id} ({name}) joined room {room_id}")
        return player

    @staticmethod
    def set_ready(db: Session, player_id: str, ready: bool) -> Player:
        """
        設定準備狀態（last-write-wins，可重複呼叫）

        與 start_game 共用同一把 room_guard，開始遊戲時不會讀到過期的準備狀態。

        異常：
            PlayerNotFound: 玩家不存在
        """
        player = PlayerRegistry.get_player(db, player_id)
        with room_guard(player.room_id):
            return PlayerRegistry._apply_ready(db, player_id, ready)

    @staticmethod
    @transactional
    def _apply_ready(db: Session, player_id: str, ready: bool) -> Player:
        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise PlayerNotFound(player_id)

        player.ready = bool(ready)
        room = with_room_lock(player.room_id, db).first()
        if room:
            bump_state_version(db, room, reason="ready_changed")

        logger.info(f"Player {player_id} ready={player.ready}")
        return player

    @staticmethod
    @transactional
    def heartbeat(db: Session, player_id: str, now: Optional[int] = None) -> Player:
        """
        更新 last_seen（前端每 10 秒呼叫一次）

        不提升 state_version：在線狀態由 last_seen 推導。
        """
        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise PlayerNotFound(player_id)

        player.last_seen = now if now is not None else now_ms()
        return player

    @staticmethod
    def get_player(db: Session, player_id: str) -> Player:
        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise PlayerNotFound(player_id)
        return player

    @staticmethod
    def list_players(db: Session, room_id: str) -> List[Player]:
        """房間內玩家（依加入順序）"""
        return (
            db.query(Player)
            .filter(Player.room_id == room_id)
            .order_by(Player.joined_at, Player.id)
            .all()
        )
