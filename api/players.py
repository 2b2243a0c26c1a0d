"""
Player API Endpoints

職責：
1. 玩家加入房間
2. 查詢房間內玩家
3. 準備狀態、heartbeat
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging

from database import get_db
from schemas import (
    PlayerJoin,
    PlayerJoinResponse,
    PlayerSchema,
    ReadyUpdate,
    HeartbeatResponse
)
from core.room_manager import RoomManager
from core.player_registry import PlayerRegistry
from core.exceptions import MatchGameException
from services.state_service import serialize_player
from api.errors import http_error

router = APIRouter(prefix="/api", tags=["players"])
logger = logging.getLogger(__name__)


@router.post("/rooms/{code}/join", response_model=PlayerJoinResponse, status_code=201)
def join_room(code: str, player_data: PlayerJoin, db: Session = Depends(get_db)):
    """
    加入房間（玩家 endpoint）

    前置條件：
    - 房間必須存在
    - 房間狀態必須是 LOBBY（尚未開始遊戲）
    - 房間內少於 2 人，且名稱未被使用
    """
    try:
        player = PlayerRegistry.join_room(db, code, player_data.name, player_data.avatar)
        return PlayerJoinResponse(room_id=player.room_id, player_id=player.id)

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/rooms/{room_id}/players", response_model=List[PlayerSchema])
def list_players(room_id: str, db: Session = Depends(get_db)):
    try:
        RoomManager.get_room_by_id(db, room_id)
        return [serialize_player(p) for p in PlayerRegistry.list_players(db, room_id)]

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to list players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/players/{player_id}/ready", response_model=PlayerSchema)
def set_ready(player_id: str, ready_data: ReadyUpdate, db: Session = Depends(get_db)):
    try:
        player = PlayerRegistry.set_ready(db, player_id, ready_data.ready)
        return serialize_player(player)

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to set ready: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/players/{player_id}/heartbeat", response_model=HeartbeatResponse)
def heartbeat(player_id: str, db: Session = Depends(get_db)):
    """前端每 heartbeat_interval_sec 秒呼叫一次"""
    try:
        player = PlayerRegistry.heartbeat(db, player_id)
        return HeartbeatResponse(player_id=player.id, last_seen=player.last_seen)

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to record heartbeat: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")
