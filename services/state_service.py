"""
State service：state_version 與房間快照

前端以短輪詢 GET /api/rooms/{code}/state 取得完整狀態，
比對 state_version 決定是否重繪。
"""
from typing import Any, Dict, Optional
import logging

from sqlalchemy.orm import Session

from models import Room, RoomStatus, Player, Round, now_ms
from services.presence_service import is_player_online
from services.scoring_service import summarize
from services.naming_service import format_room_code

logger = logging.getLogger(__name__)


def bump_state_version(db: Session, room: Room, reason: str) -> int:
    """
    提升房間的 state_version（不 commit）

    所有會改變前端畫面的寫入都要呼叫（heartbeat 除外，presence 是推導值）。
    """
    room.state_version = (room.state_version or 0) + 1
    room.updated_at = now_ms()
    logger.debug(f"Room {room.id} state_version={room.state_version} ({reason})")
    return room.state_version


def serialize_room(room: Room) -> Dict[str, Any]:
    return {
        "id": room.id,
        "code": room.code,
        "display_code": format_room_code(room.code),
        "status": RoomStatus(room.status).value,
        "deck_id": room.deck_id,
        "total_rounds": room.total_rounds,
        "created_at": room.created_at,
        "host_id": room.host_id,
        "current_round_index": room.current_round_index,
        "question_sequence": list(room.question_sequence or []),
        "state_version": room.state_version,
    }


def serialize_player(player: Player, now: Optional[int] = None) -> Dict[str, Any]:
    return {
        "id": player.id,
        "room_id": player.room_id,
        "name": player.name,
        "avatar": player.avatar,
        "ready": player.ready,
        "last_seen": player.last_seen,
        "online": is_player_online(player.last_seen, now),
    }


def serialize_round(round_obj: Round) -> Dict[str, Any]:
    return {
        "room_id": round_obj.room_id,
        "round_index": round_obj.round_index,
        "question_id": round_obj.question_id,
        "locked": round_obj.locked,
        "answers": round_obj.answers,
        "both_locked": round_obj.both_locked,
        "score_delta": round_obj.score_delta if round_obj.revealed else None,
        "revealed": round_obj.revealed,
    }


def build_room_snapshot(db: Session, room: Room, now: Optional[int] = None) -> Dict[str, Any]:
    """
    組出房間的完整快照（唯讀）

    返回：
        room / players / current_round / rounds / score
    """
    if now is None:
        now = now_ms()

    players = (
        db.query(Player)
        .filter(Player.room_id == room.id)
        .order_by(Player.joined_at, Player.id)
        .all()
    )
    rounds = (
        db.query(Round)
        .filter(Round.room_id == room.id)
        .order_by(Round.round_index)
        .all()
    )

    current_round = None
    if room.status != RoomStatus.LOBBY:
        current_round = next(
            (r for r in rounds if r.round_index == room.current_round_index), None
        )

    score = summarize(rounds, room.total_rounds)

    return {
        "room": serialize_room(room),
        "players": [serialize_player(p, now) for p in players],
        "current_round": serialize_round(current_round) if current_round else None,
        "rounds": [serialize_round(r) for r in rounds],
        "score": {
            "total_score": score.total_score,
            "total_rounds": score.total_rounds,
            "percentage": score.percentage,
            "message": score.message,
        },
    }
