"""
資料表定義

- Room：一場遊戲（以 code 查詢）
- Player：房間內的玩家（以 room_id 查詢，最多 2 人）
- Round：一題一回合（以 (room_id, round_index) 查詢）
- Answer：玩家在某回合鎖定的答案，每位玩家一列
- EventLog：事件紀錄
"""
import enum
import time
import uuid

from sqlalchemy import (
    Column,
    String,
    Integer,
    BigInteger,
    Boolean,
    Enum,
    JSON,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def generate_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    """目前時間（epoch 毫秒）"""
    return int(time.time() * 1000)


class RoomStatus(str, enum.Enum):
    LOBBY = "lobby"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class Room(Base):
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=generate_id)
    code = Column(String(6), nullable=False, unique=True, index=True)
    status = Column(
        Enum(RoomStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RoomStatus.LOBBY
    )
    deck_id = Column(String(64), nullable=False)
    total_rounds = Column(Integer, nullable=False)
    created_at = Column(BigInteger, nullable=False, default=now_ms)
    host_id = Column(String(36), nullable=True)
    current_round_index = Column(Integer, nullable=False, default=0)
    question_sequence = Column(JSON, nullable=False, default=list)

    # 短輪詢用：每次狀態變更 +1
    state_version = Column(Integer, nullable=False, default=0)
    updated_at = Column(BigInteger, nullable=False, default=now_ms)


class Player(Base):
    __tablename__ = "players"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    name = Column(String(64), nullable=False)
    avatar = Column(String(16), nullable=False)
    ready = Column(Boolean, nullable=False, default=False)
    last_seen = Column(BigInteger, nullable=False, default=now_ms)
    joined_at = Column(BigInteger, nullable=False, default=now_ms)


class Round(Base):
    __tablename__ = "rounds"
    __table_args__ = (
        UniqueConstraint("room_id", "round_index", name="uq_round_room_index"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False)
    round_index = Column(Integer, nullable=False)
    question_id = Column(String(64), nullable=False)
    score_delta = Column(Integer, nullable=False, default=0)
    revealed = Column(Boolean, nullable=False, default=False)
    revealed_at = Column(BigInteger, nullable=True)

    submissions = relationship(
        "Answer",
        back_populates="round",
        order_by="Answer.locked_at",
        cascade="all, delete-orphan"
    )

    @property
    def locked(self) -> dict:
        """player_id -> 是否已鎖定"""
        return {a.player_id: bool(a.locked) for a in self.submissions}

    @property
    def answers(self) -> dict:
        """player_id -> option_id"""
        return {a.player_id: a.option_id for a in self.submissions if a.locked}

    @property
    def both_locked(self) -> bool:
        # 由鎖定表推導，不另外儲存
        return sum(1 for is_locked in self.locked.values() if is_locked) == 2


class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("round_id", "player_id", name="uq_answer_round_player"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    round_id = Column(String(36), ForeignKey("rounds.id"), nullable=False, index=True)
    player_id = Column(String(36), ForeignKey("players.id"), nullable=False)
    option_id = Column(String(64), nullable=False)
    locked = Column(Boolean, nullable=False, default=True)
    locked_at = Column(BigInteger, nullable=False, default=now_ms)

    round = relationship("Round", back_populates="submissions")


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    event_type = Column(String(32), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(BigInteger, nullable=False, default=now_ms)


