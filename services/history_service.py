"""
Round history service.

Builds the per-room list of revealed rounds so the results screen can
show both answers and whether they matched, straight from the server.
"""
from typing import List, Dict, Any

from sqlalchemy.orm import Session

from models import Round


def get_round_history(db: Session, room_id: str) -> List[Dict[str, Any]]:
    """
    Return revealed rounds of a room ordered by round_index.

    Unrevealed rounds are skipped: their answers are still mutable and
    the score_delta is not meaningful yet.
    """
    rounds = (
        db.query(Round)
        .filter(Round.room_id == room_id, Round.revealed.is_(True))
        .order_by(Round.round_index)
        .all()
    )

    history: List[Dict[str, Any]] = []
    for round_obj in rounds:
        history.append({
            "round_index": round_obj.round_index,
            "question_id": round_obj.question_id,
            "answers": round_obj.answers,
            "matched": round_obj.score_delta == 1,
        })
    return history
