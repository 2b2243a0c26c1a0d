"""
完整一場遊戲：建立房間 -> 加入 -> 準備 -> 開始 -> 10 回合 -> 結束
"""
from core.room_manager import RoomManager
from core.player_registry import PlayerRegistry
from core.round_manager import RoundManager
from models import RoomStatus
from services.scoring_service import summarize
from services.history_service import get_round_history
from tests.conftest import QUESTION_IDS


def test_full_game(db):
    room, ava = RoomManager.create_room(db, "Ava", "🙂")
    ben = PlayerRegistry.join_room(db, room.code, "Ben", "😎")
    room_id = room.id

    PlayerRegistry.set_ready(db, ava.id, True)
    PlayerRegistry.set_ready(db, ben.id, True)
    RoomManager.start_game(db, room_id, "soft-sweet-visual", QUESTION_IDS)

    # Round 0：相同選項
    RoundManager.lock_answer(db, room_id, 0, ava.id, "a")
    RoundManager.lock_answer(db, room_id, 0, ben.id, "a")
    assert RoundManager.reveal_round(db, room_id, 0, ava.id, ben.id) == 1

    expected_matches = 1
    for round_index in range(1, 10):
        outcome = RoundManager.advance_round(db, room_id, expected_index=round_index - 1)
        assert outcome.status == RoomStatus.IN_PROGRESS
        assert outcome.round_index == round_index

        # 奇數回合不同、偶數回合相同
        ben_option = "b" if round_index % 2 else "a"
        RoundManager.lock_answer(db, room_id, round_index, ava.id, "a")
        RoundManager.lock_answer(db, room_id, round_index, ben.id, ben_option)
        delta = RoundManager.reveal_round(db, room_id, round_index, ava.id, ben.id)
        assert delta == (0 if round_index % 2 else 1)
        expected_matches += delta

    outcome = RoundManager.advance_round(db, room_id, expected_index=9)
    assert outcome.status == RoomStatus.FINISHED

    finished = RoomManager.get_room_by_id(db, room_id)
    assert finished.status == RoomStatus.FINISHED

    rounds = RoundManager.get_all_rounds(db, room_id)
    assert len(rounds) == 10
    assert [r.question_id for r in rounds] == QUESTION_IDS

    summary = summarize(rounds, finished.total_rounds)
    assert expected_matches == 5
    assert summary.total_score == 5
    assert summary.percentage == 50
    assert summary.message == "Good compatibility!"

    history = get_round_history(db, room_id)
    assert [h["matched"] for h in history] == [True, False] * 5
    assert history[1]["answers"] == {ava.id: "a", ben.id: "b"}

    # 玩家紀錄在遊戲結束後仍保留
    assert len(PlayerRegistry.list_players(db, room_id)) == 2
