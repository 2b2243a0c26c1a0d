"""
閒置房間清理

核心本身不定義房間的過期；這裡提供可選的清理策略：
房間的 updated_at 以及所有玩家的 last_seen 都早於 cutoff 時，
刪除房間與其玩家、回合、答案、事件。

settings.room_ttl_hours = 0（預設）時不啟用。
"""
from typing import List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import transactional
from models import Room, Player, Round, Answer, EventLog, now_ms
from core.locks import release_room_guard

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000


def find_stale_room_ids(db: Session, max_idle_hours: float, now: Optional[int] = None) -> List[str]:
    if now is None:
        now = now_ms()
    cutoff = now - int(max_idle_hours * HOUR_MS)

    last_seen_by_room = dict(
        db.query(Player.room_id, func.max(Player.last_seen))
        .group_by(Player.room_id)
        .all()
    )

    stale = []
    for room_id, updated_at in db.query(Room.id, Room.updated_at).all():
        last_activity = max(updated_at or 0, last_seen_by_room.get(room_id) or 0)
        if last_activity < cutoff:
            stale.append(room_id)
    return stale


@transactional
def purge_stale_rooms(db: Session, max_idle_hours: float, now: Optional[int] = None) -> int:
    """
    刪除閒置超過 max_idle_hours 的房間

    返回：
        刪除的房間數
    """
    room_ids = find_stale_room_ids(db, max_idle_hours, now)
    if not room_ids:
        return 0

    round_ids = [
        r for (r,) in db.query(Round.id).filter(Round.room_id.in_(room_ids)).all()
    ]
    if round_ids:
        db.query(Answer).filter(Answer.round_id.in_(round_ids)).delete(synchronize_session=False)
    db.query(Round).filter(Round.room_id.in_(room_ids)).delete(synchronize_session=False)
    db.query(Player).filter(Player.room_id.in_(room_ids)).delete(synchronize_session=False)
    db.query(EventLog).filter(EventLog.room_id.in_(room_ids)).delete(synchronize_session=False)
    db.query(Room).filter(Room.id.in_(room_ids)).delete(synchronize_session=False)

    for room_id in room_ids:
        release_room_guard(room_id)

    logger.info(f"Purged {len(room_ids)} stale rooms")
    return len(room_ids)
