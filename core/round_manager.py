"""
Round Manager：回合引擎

職責：
1. 查詢回合（目前回合 / 全部回合）
2. 鎖定答案（冪等：同一玩家重複鎖定 = 覆寫選項）
3. 公布結果（每回合只計分一次）
4. 推進到下一回合或結束遊戲

回合狀態（每個 round_index）：

    unlocked（0 或 1 人鎖定）--兩人都鎖定--> revealable --reveal--> revealed

revealable 由鎖定表推導，不儲存。

並發設計：
- 兩位玩家的 client 都可能觸發 reveal / advance（自動計時器）
- 所有「先檢查再修改」都在 room_guard + 行級鎖內完成
- reveal 的輸家拿到 RoundAlreadyRevealed，分數不會被改寫
- advance 帶 expected_index 時，過期呼叫是 no-op；不帶時，目前回合尚未公布就是 no-op
"""
from sqlalchemy.orm import Session
from typing import List, NamedTuple, Optional
import logging

from database import transactional
from models import Room, Player, Round, Answer, RoomStatus, EventLog, now_ms
from core.state_machine import RoomStateMachine
from core.locks import with_room_lock, with_round_lock, serialized_by_room
from core.exceptions import (
    RoomNotFound,
    RoundNotFound,
    PlayerNotFound,
    PlayerNotInRoom,
    RoundAlreadyRevealed,
    AnswersNotLocked,
    InvalidStateTransition
)
from services.state_service import bump_state_version

logger = logging.getLogger(__name__)


class AdvanceOutcome(NamedTuple):
    status: RoomStatus
    round_index: int
    advanced: bool


def compute_score_delta(option_a: str, option_b: str) -> int:
    """兩人選項相同得 1 分，否則 0 分"""
    return 1 if option_a == option_b else 0


class RoundManager:
    """回合生命週期管理器"""

    @staticmethod
    def get_round(db: Session, room_id: str, round_index: int) -> Optional[Round]:
        return db.query(Round).filter(
            Round.room_id == room_id,
            Round.round_index == round_index
        ).first()

    @staticmethod
    def get_current_round(db: Session, room_id: str) -> Optional[Round]:
        """房間 current_round_index 對應的回合（LOBBY 時為 None）"""
        room = db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise RoomNotFound(room_id)
        if room.status == RoomStatus.LOBBY:
            return None
        return RoundManager.get_round(db, room_id, room.current_round_index)

    @staticmethod
    def get_all_rounds(db: Session, room_id: str) -> List[Round]:
        return (
            db.query(Round)
            .filter(Round.room_id == room_id)
            .order_by(Round.round_index)
            .all()
        )

    @staticmethod
    @serialized_by_room
    @transactional
    def lock_answer(db: Session, room_id: str, round_index: int,
                    player_id: str, option_id: str) -> Answer:
        """
        鎖定玩家答案

        前置條件：
        - 回合存在且尚未公布
        - 玩家存在且屬於此房間

        效果：
        - upsert (round, player) 那一列：option_id 覆寫、locked=True
        - 另一位玩家的答案是獨立的一列，不會被覆蓋

        異常：
            RoundNotFound / RoundAlreadyRevealed / PlayerNotFound / PlayerNotInRoom
        """
        # 1. 鎖定回合
        round_obj = with_round_lock(room_id, round_index, db).first()
        if not round_obj:
            raise RoundNotFound(room_id, round_index)

        if round_obj.revealed:
            raise RoundAlreadyRevealed(
                f"Round {round_index} of room {room_id} is already revealed"
            )

        # 2. 驗證玩家
        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise PlayerNotFound(player_id)
        if player.room_id != room_id:
            raise PlayerNotInRoom(f"Player {player_id} is not in room {room_id}")

        # 3. upsert 答案
        now = now_ms()
        answer = db.query(Answer).filter(
            Answer.round_id == round_obj.id,
            Answer.player_id == player_id
        ).first()

        if answer:
            previous = answer.option_id
            answer.option_id = option_id
            answer.locked = True
            answer.locked_at = now
            logger.info(
                f"Player {player_id} re-locked round {round_index} "
                f"(room={room_id}): {previous} -> {option_id}"
            )
        else:
            answer = Answer(
                round_id=round_obj.id,
                player_id=player_id,
                option_id=option_id,
                locked=True,
                locked_at=now
            )
            db.add(answer)
            logger.info(
                f"Player {player_id} locked round {round_index} (room={room_id}): {option_id}"
            )

        db.add(EventLog(
            room_id=room_id,
            event_type="ANSWER_LOCKED",
            data={"round_index": round_index, "player_id": player_id}
        ))

        room = with_room_lock(room_id, db).first()
        bump_state_version(db, room, reason="answer_locked")
        return answer

    @staticmethod
    @serialized_by_room
    @transactional
    def reveal_round(db: Session, room_id: str, round_index: int,
                     player_a: str, player_b: str) -> int:
        """
        公布回合結果並計分

        前置條件：
        - 回合存在且尚未公布
        - player_a、player_b 是兩個不同的玩家，且都已鎖定

        效果：
        - score_delta = 1（選項相同）或 0
        - revealed = True；之後答案與分數都不可變

        「檢查 revealed 再設定」在同一個臨界區內完成，
        兩個 client 同時呼叫時只有一個會成功，另一個拿到 RoundAlreadyRevealed。

        返回：
            score_delta

        異常：
            RoundNotFound / RoundAlreadyRevealed / AnswersNotLocked
        """
        round_obj = with_round_lock(room_id, round_index, db).first()
        if not round_obj:
            raise RoundNotFound(room_id, round_index)

        if round_obj.revealed:
            raise RoundAlreadyRevealed(
                f"Round {round_index} of room {room_id} is already revealed"
            )

        if not player_a or not player_b or player_a == player_b:
            raise AnswersNotLocked("Reveal needs two distinct players")

        answers = {
            a.player_id: a
            for a in db.query(Answer).filter(
                Answer.round_id == round_obj.id,
                Answer.player_id.in_([player_a, player_b])
            ).populate_existing().all()
            if a.locked
        }
        missing = [p for p in (player_a, player_b) if p not in answers]
        if missing:
            raise AnswersNotLocked(
                f"Both players must lock their answers first (missing: {', '.join(missing)})"
            )

        score_delta = compute_score_delta(
            answers[player_a].option_id,
            answers[player_b].option_id
        )
        round_obj.score_delta = score_delta
        round_obj.revealed = True
        round_obj.revealed_at = now_ms()

        db.add(EventLog(
            room_id=room_id,
            event_type="ROUND_REVEALED",
            data={"round_index": round_index, "score_delta": score_delta}
        ))

        room = with_room_lock(room_id, db).first()
        bump_state_version(db, room, reason="round_revealed")

        logger.info(
            f"Round {round_index} revealed for room {room_id}: score_delta={score_delta}"
        )
        return score_delta

    @staticmethod
    @serialized_by_room
    @transactional
    def advance_round(db: Session, room_id: str,
                      expected_index: Optional[int] = None) -> AdvanceOutcome:
        """
        推進到下一回合，或在最後一回合之後結束遊戲

        冪等設計：
        - 房間已 FINISHED：直接回傳 finished，advanced=False
        - 帶 expected_index 且與房間目前回合不同：視為重複呼叫
          （例如兩個 client 的自動推進計時器同時觸發），回傳目前狀態，advanced=False
        - 未帶 expected_index 且目前回合尚未公布：視為重複呼叫（上一次 advance
          剛建立的新回合），回傳目前狀態，advanced=False

        效果：
        - current_round_index + 1 == total_rounds：狀態 -> FINISHED，不建立新回合
        - 否則：建立下一回合（題目取自 question_sequence），更新 current_round_index

        異常：
            RoomNotFound: Room 不存在
            InvalidStateTransition: 遊戲尚未開始
        """
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

        status = RoomStatus(room.status)
        if status == RoomStatus.LOBBY:
            raise InvalidStateTransition(f"Room {room_id} has not started yet")

        if status == RoomStatus.FINISHED:
            logger.info(f"Advance ignored for finished room {room_id}")
            return AdvanceOutcome(RoomStatus.FINISHED, room.current_round_index, False)

        current = room.current_round_index
        if expected_index is not None and expected_index != current:
            logger.warning(
                f"Stale advance for room {room_id}: expected {expected_index}, current {current}"
            )
            return AdvanceOutcome(RoomStatus.IN_PROGRESS, current, False)

        if expected_index is None:
            # 沒帶 index 時，以目前回合是否已公布判斷是否為重複呼叫
            current_round = with_round_lock(room_id, current, db).first()
            if current_round is not None and not current_round.revealed:
                logger.info(
                    f"Advance ignored for room {room_id}: round {current} is not revealed"
                )
                return AdvanceOutcome(RoomStatus.IN_PROGRESS, current, False)

        next_index = current + 1

        if next_index >= room.total_rounds:
            room = RoomStateMachine.transition(room_id, RoomStatus.FINISHED, db)
            db.add(EventLog(
                room_id=room_id,
                event_type="GAME_FINISHED",
                data={"rounds_played": next_index}
            ))
            bump_state_version(db, room, reason="game_finished")
            logger.info(f"Game finished for room {room_id}")
            return AdvanceOutcome(RoomStatus.FINISHED, current, True)

        db.add(Round(
            room_id=room_id,
            round_index=next_index,
            question_id=room.question_sequence[next_index],
            score_delta=0,
            revealed=False
        ))
        room.current_round_index = next_index

        db.add(EventLog(
            room_id=room_id,
            event_type="ROUND_STARTED",
            data={"round_index": next_index}
        ))
        bump_state_version(db, room, reason="round_started")

        logger.info(f"Room {room_id} advanced to round {next_index}")
        return AdvanceOutcome(RoomStatus.IN_PROGRESS, next_index, True)
