"""
Room Manager：管理 Room 的完整生命週期

職責：
1. 建立 Room（含 Host player）
2. 開始遊戲（狀態轉換 + 驗證 + 建立第 0 回合）
3. 查詢 Room 資訊

原則：
- 單一職責：只管 Room，回合推進交給 RoundManager
- 所有狀態變更經過 RoomStateMachine
- 先檢查資料是否符合要求，再執行操作（檢查失敗時不留下任何修改）
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Tuple
import logging

from database import settings, transactional
from models import Room, Player, Round, RoomStatus, EventLog, now_ms
from core.state_machine import RoomStateMachine
from core.locks import with_room_lock, serialized_by_room
from core.exceptions import (
    RoomNotFound,
    RoomCodeExhausted,
    InvalidPlayerCount,
    PlayersNotReady,
    InvalidQuestionSequence,
    InvalidStateTransition
)
from services.naming_service import generate_room_code, normalize_room_code, is_valid_room_code
from services.state_service import bump_state_version

logger = logging.getLogger(__name__)

PLAYERS_PER_ROOM = 2


class RoomManager:
    """Room 生命週期管理器"""

    @staticmethod
    def _unique_room_code(db: Session) -> str:
        """生成未被使用的房間代碼，碰撞時重試（有上限）"""
        for attempt in range(settings.room_code_max_attempts):
            code = generate_room_code()
            if not db.query(Room.id).filter(Room.code == code).first():
                return code
            logger.warning(
                f"Room code collision detected ({code}), retry {attempt + 1}"
            )
        raise RoomCodeExhausted(
            f"Could not allocate a unique room code after "
            f"{settings.room_code_max_attempts} attempts"
        )

    @staticmethod
    @transactional
    def create_room(db: Session, host_name: str, host_avatar: str) -> Tuple[Room, Player]:
        """
        建立新房間（含 Host 玩家）

        流程：
        1. 生成唯一的房間代碼
        2. 建立 Room（lobby，預設題庫與回合數）
        3. 建立 Host Player 並綁定 host_id
        4. 記錄事件

        返回：
            (Room, Host Player) tuple

        異常：
            RoomCodeExhausted: 代碼重試次數用完，或寫入時撞到唯一索引
        """
        code = RoomManager._unique_room_code(db)
        now = now_ms()

        room = Room(
            code=code,
            status=RoomStatus.LOBBY,
            deck_id=settings.default_deck_id,
            total_rounds=settings.total_rounds,
            created_at=now,
            updated_at=now,
            current_round_index=0,
            question_sequence=[],
            state_version=0
        )
        db.add(room)
        try:
            db.flush()  # 取得 room.id；並發建立時唯一索引在這裡擋下
        except IntegrityError as e:
            raise RoomCodeExhausted(f"Room code {code} was taken concurrently") from e

        host = Player(
            room_id=room.id,
            name=host_name,
            avatar=host_avatar,
            ready=False,
            last_seen=now,
            joined_at=now
        )
        db.add(host)
        db.flush()

        room.host_id = host.id

        db.add(EventLog(
            room_id=room.id,
            event_type="ROOM_CREATED",
            data={"code": code, "host_id": host.id}
        ))

        logger.info(f"Created room {room.id} with code {code}, host {host.id}")
        return room, host

    @staticmethod
    @serialized_by_room
    @transactional
    def start_game(db: Session, room_id: str, deck_id: str, question_ids: List[str]) -> Room:
        """
        開始遊戲（狀態轉換 LOBBY -> IN_PROGRESS）

        前置條件：
        1. Room 必須存在
        2. Room 狀態必須是 LOBBY
        3. 剛好 2 位玩家，且都已準備
        4. 題目數量等於房間的 total_rounds

        流程：
        1. 鎖定 Room 並驗證所有前置條件
        2. 透過 StateMachine 轉換狀態
        3. 寫入題目順序，建立第 0 回合
        4. 記錄事件

        異常：
            RoomNotFound / InvalidStateTransition / InvalidPlayerCount /
            PlayersNotReady / InvalidQuestionSequence
        """
        # 1. 取得並鎖定 Room
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

        if room.status != RoomStatus.LOBBY:
            raise InvalidStateTransition(
                f"Room {room_id} already started (status: {RoomStatus(room.status).value})"
            )

        # 2. 驗證玩家
        players = db.query(Player).filter(Player.room_id == room_id).all()
        if len(players) != PLAYERS_PER_ROOM:
            raise InvalidPlayerCount(
                f"Need exactly {PLAYERS_PER_ROOM} players to start, got {len(players)}"
            )

        not_ready = [p.name for p in players if not p.ready]
        if not_ready:
            raise PlayersNotReady(f"Players not ready: {', '.join(not_ready)}")

        # 3. 驗證題目
        question_ids = list(question_ids or [])
        if len(question_ids) != room.total_rounds:
            raise InvalidQuestionSequence(
                f"Need exactly {room.total_rounds} questions, got {len(question_ids)}"
            )

        # 4. 狀態轉換（會記錄 ROOM_STATE_CHANGED 事件）
        room = RoomStateMachine.transition(room_id, RoomStatus.IN_PROGRESS, db)
        room.deck_id = deck_id
        room.question_sequence = question_ids
        room.current_round_index = 0

        # 5. 建立第 0 回合
        db.add(Round(
            room_id=room_id,
            round_index=0,
            question_id=question_ids[0],
            score_delta=0,
            revealed=False
        ))

        db.add(EventLog(
            room_id=room_id,
            event_type="GAME_STARTED",
            data={"deck_id": deck_id, "question_ids": question_ids}
        ))
        bump_state_version(db, room, reason="game_started")

        logger.info(f"Starting game for room {room_id} with deck {deck_id}")
        return room

    @staticmethod
    def get_room_by_code(db: Session, code: str) -> Room:
        """
        透過房間代碼取得 Room（輸入不分大小寫、忽略空白與符號）

        異常：
            RoomNotFound: Room 不存在
        """
        normalized = normalize_room_code(code)
        if not is_valid_room_code(normalized):
            # 格式不符直接視為不存在
            raise RoomNotFound(f"with code {code!r}")
        room = db.query(Room).filter(Room.code == normalized).first()
        if not room:
            raise RoomNotFound(f"with code {normalized}")
        return room

    @staticmethod
    def get_room_by_id(db: Session, room_id: str) -> Room:
        """
        透過 id 取得 Room

        異常：
            RoomNotFound: Room 不存在
        """
        room = db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise RoomNotFound(room_id)
        return room
