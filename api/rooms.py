"""
Room API Endpoints

職責：
1. 建立房間（Host）
2. 以代碼查詢房間與玩家
3. 房間快照（前端短輪詢）
4. 開始遊戲
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    RoomCreate,
    RoomCreateResponse,
    RoomWithPlayers,
    RoomSchema,
    RoomStateResponse,
    StartGame
)
from core.room_manager import RoomManager
from core.player_registry import PlayerRegistry
from core.exceptions import MatchGameException
from services.deck_service import pick_question_ids
from services.naming_service import format_room_code
from services.state_service import (
    build_room_snapshot,
    serialize_room,
    serialize_player
)
from api.errors import http_error

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.post("", response_model=RoomCreateResponse, status_code=201)
def create_room(room_data: RoomCreate, db: Session = Depends(get_db)):
    """
    建立房間（Host endpoint）

    返回：
        - room_id / code / display_code（"ABC 123"）
        - host_player_id：Host 自己的玩家 id
    """
    try:
        room, host = RoomManager.create_room(db, room_data.host_name, room_data.host_avatar)
        return RoomCreateResponse(
            room_id=room.id,
            code=room.code,
            display_code=format_room_code(room.code),
            host_player_id=host.id
        )

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}", response_model=RoomWithPlayers)
def get_room(code: str, db: Session = Depends(get_db)):
    """以代碼取得房間與玩家（代碼不分大小寫）"""
    try:
        room = RoomManager.get_room_by_code(db, code)
        players = PlayerRegistry.list_players(db, room.id)
        return RoomWithPlayers(
            room=RoomSchema(**serialize_room(room)),
            players=[serialize_player(p) for p in players]
        )

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to get room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/state", response_model=RoomStateResponse)
def get_room_state(code: str, db: Session = Depends(get_db)):
    """
    房間完整快照（短輪詢）

    前端比對 room.state_version，有變化才重繪。
    """
    try:
        room = RoomManager.get_room_by_code(db, code)
        return build_room_snapshot(db, room)

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to build state for room {code}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/start", response_model=RoomSchema)
def start_game(room_id: str, start_data: StartGame, db: Session = Depends(get_db)):
    """
    開始遊戲（Host endpoint）

    前置條件：
    - 房間在 LOBBY
    - 剛好 2 位玩家且都已準備
    - question_ids 數量等於回合數（省略時從題庫隨機抽題）
    """
    try:
        room = RoomManager.get_room_by_id(db, room_id)
        deck_id = start_data.deck_id or room.deck_id

        question_ids = start_data.question_ids
        if question_ids is None:
            question_ids = pick_question_ids(deck_id, room.total_rounds)

        room = RoomManager.start_game(db, room_id, deck_id, question_ids)
        return RoomSchema(**serialize_room(room))

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to start game for room {room_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")
