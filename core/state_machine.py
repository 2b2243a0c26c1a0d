"""
Room 狀態機

所有 Room.status 的變更都必須經過這裡：

    LOBBY --start_game--> IN_PROGRESS --(最後一回合之後 advance)--> FINISHED

- 狀態只能前進，不能倒退
- 不能跳過 IN_PROGRESS
- FINISHED 是終點
"""
from sqlalchemy.orm import Session
import logging

from models import Room, RoomStatus, EventLog
from core.exceptions import RoomNotFound, InvalidStateTransition
from core.locks import with_room_lock

logger = logging.getLogger(__name__)


class RoomStateMachine:
    """Room 狀態轉換"""

    TRANSITIONS = {
        RoomStatus.LOBBY: {RoomStatus.IN_PROGRESS},
        RoomStatus.IN_PROGRESS: {RoomStatus.FINISHED},
        RoomStatus.FINISHED: set(),
    }

    @classmethod
    def can_transition(cls, current: RoomStatus, target: RoomStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(cls, room_id: str, target: RoomStatus, db: Session) -> Room:
        """
        轉換 Room 狀態（不 commit，由呼叫者的 transaction 處理）

        異常：
            RoomNotFound: Room 不存在
            InvalidStateTransition: 不允許的轉換
        """
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

        current = RoomStatus(room.status)
        if not cls.can_transition(current, target):
            raise InvalidStateTransition(
                f"Room {room_id} cannot move from {current.value} to {target.value}"
            )

        room.status = target
        db.add(EventLog(
            room_id=room_id,
            event_type="ROOM_STATE_CHANGED",
            data={"from": current.value, "to": target.value}
        ))

        logger.info(f"Room {room_id} state {current.value} -> {target.value}")
        return room
