"""
Round API Endpoints - 短輪詢版

重點：
1. lock 冪等：同一玩家重複鎖定 = 覆寫選項（公布前）
2. reveal 只會成功一次，重複呼叫回 409
3. advance 帶 expected_index，兩個 client 的計時器同時觸發也只會推進一次
4. 所有業務邏輯集中在 RoundManager，前端靠 /state 取得更新
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging

from database import get_db
from schemas import (
    RoundSchema,
    AnswerLock,
    RevealRequest,
    RevealResponse,
    AdvanceRequest,
    AdvanceResponse,
    ActionResponse,
    ScoreResponse,
    RoundHistoryEntry
)
from core.round_manager import RoundManager
from core.room_manager import RoomManager
from core.player_registry import PlayerRegistry
from core.exceptions import MatchGameException, RoundNotFound, InvalidPlayerCount
from services.scoring_service import summarize
from services.history_service import get_round_history
from services.state_service import serialize_round
from api.errors import http_error

router = APIRouter(prefix="/api/rooms", tags=["rounds"])
logger = logging.getLogger(__name__)


@router.get("/{room_id}/rounds", response_model=List[RoundSchema])
def get_all_rounds(room_id: str, db: Session = Depends(get_db)):
    """全部回合（依 round_index 排序）"""
    try:
        RoomManager.get_room_by_id(db, room_id)
        return [serialize_round(r) for r in RoundManager.get_all_rounds(db, room_id)]

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to get rounds: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{room_id}/rounds/{round_index}", response_model=RoundSchema)
def get_round(room_id: str, round_index: int, db: Session = Depends(get_db)):
    try:
        round_obj = RoundManager.get_round(db, room_id, round_index)
        if not round_obj:
            raise RoundNotFound(room_id, round_index)
        return serialize_round(round_obj)

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to get round: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/rounds/{round_index}/lock", response_model=ActionResponse)
def lock_answer(
    room_id: str,
    round_index: int,
    lock_data: AnswerLock,
    db: Session = Depends(get_db)
):
    """
    鎖定答案

    前置條件：
    - 回合存在且尚未公布
    - 玩家屬於此房間
    """
    try:
        RoundManager.lock_answer(
            db, room_id, round_index, lock_data.player_id, lock_data.option_id
        )
        return ActionResponse(status="ok")

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to lock answer: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/rounds/{round_index}/reveal", response_model=RevealResponse)
def reveal_round(
    room_id: str,
    round_index: int,
    reveal_data: RevealRequest,
    db: Session = Depends(get_db)
):
    """
    公布回合結果

    player_a / player_b 省略時使用房間內的兩位玩家。
    兩個 client 同時呼叫時，只有一個拿到 200，另一個拿到 409。
    """
    try:
        player_a, player_b = reveal_data.player_a, reveal_data.player_b
        if not player_a or not player_b:
            players = PlayerRegistry.list_players(db, room_id)
            if len(players) != 2:
                raise InvalidPlayerCount(
                    f"Room {room_id} has {len(players)} players, reveal needs 2"
                )
            player_a, player_b = players[0].id, players[1].id

        score_delta = RoundManager.reveal_round(db, room_id, round_index, player_a, player_b)
        return RevealResponse(score_delta=score_delta)

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to reveal round: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/advance", response_model=AdvanceResponse)
def advance_round(
    room_id: str,
    advance_data: AdvanceRequest,
    db: Session = Depends(get_db)
):
    """
    推進到下一回合（最後一回合之後結束遊戲）

    expected_index 與伺服器目前回合不同時不做任何事（advanced=False）；
    未帶 expected_index 時，目前回合尚未公布也不做任何事。
    """
    try:
        outcome = RoundManager.advance_round(db, room_id, advance_data.expected_index)
        return AdvanceResponse(
            status=outcome.status.value,
            round_index=outcome.round_index,
            advanced=outcome.advanced
        )

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to advance room {room_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{room_id}/score", response_model=ScoreResponse)
def get_score(room_id: str, db: Session = Depends(get_db)):
    """總分、契合度百分比與評語"""
    try:
        room = RoomManager.get_room_by_id(db, room_id)
        summary = summarize(RoundManager.get_all_rounds(db, room_id), room.total_rounds)
        return ScoreResponse(
            total_score=summary.total_score,
            total_rounds=summary.total_rounds,
            percentage=summary.percentage,
            message=summary.message
        )

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to get score: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{room_id}/history", response_model=List[RoundHistoryEntry])
def get_history(room_id: str, db: Session = Depends(get_db)):
    """已公布回合的紀錄（結果頁使用）"""
    try:
        RoomManager.get_room_by_id(db, room_id)
        return get_round_history(db, room_id)

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to get history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
