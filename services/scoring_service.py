"""
計分服務：由回合紀錄推導總分、契合度百分比與評語

純計算邏輯，不讀寫資料庫
"""
import math
from dataclasses import dataclass
from typing import Iterable, Optional

# (下限百分比, 評語)，由高到低
MATCH_BANDS = [
    (80, "Perfect match!"),
    (60, "Great connection!"),
    (40, "Good compatibility!"),
    (20, "Some similarities!"),
    (0, "Opposites attract!"),
]


@dataclass
class ScoreSummary:
    total_score: int
    total_rounds: int
    percentage: int
    message: str


def calculate_total_score(rounds: Optional[Iterable]) -> int:
    """
    計算已公布回合的 score_delta 總和

    score_delta 缺漏或型別不對的回合當作 0 分。
    rounds 可以是 Round ORM 物件或 dict。
    """
    if not rounds:
        return 0

    total = 0
    for r in rounds:
        if r is None:
            continue
        if isinstance(r, dict):
            revealed = r.get("revealed", False)
            delta = r.get("score_delta")
        else:
            revealed = getattr(r, "revealed", False)
            delta = getattr(r, "score_delta", None)

        if not revealed:
            continue
        # bool 也是 int，要排除
        if isinstance(delta, int) and not isinstance(delta, bool):
            total += delta
    return total


def get_match_percentage(score: int, total_rounds: int) -> int:
    """
    契合度百分比，四捨五入到整數

    範例：
        get_match_percentage(7, 10) -> 70
        get_match_percentage(1, 8)  -> 13   (12.5 進位)
        get_match_percentage(3, 0)  -> 0
    """
    if not total_rounds:
        return 0
    # 0.5 一律進位（round() 是銀行家捨入）
    return int(math.floor(100 * score / total_rounds + 0.5))


def get_match_message(percentage: int) -> str:
    """
    依百分比區間給評語

    區間單調且涵蓋 0-100，每個百分比剛好對應一個評語。
    """
    for floor, message in MATCH_BANDS:
        if percentage >= floor:
            return message
    return MATCH_BANDS[-1][1]


def summarize(rounds: Optional[Iterable], total_rounds: int) -> ScoreSummary:
    score = calculate_total_score(rounds)
    percentage = get_match_percentage(score, total_rounds)
    return ScoreSummary(
        total_score=score,
        total_rounds=total_rounds,
        percentage=percentage,
        message=get_match_message(percentage),
    )
