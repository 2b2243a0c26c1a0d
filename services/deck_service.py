"""
題庫服務：載入內建題庫、抽出本場題目

題庫以 JSON 檔放在 services/decks/<deck_id>.json。
Round Engine 只儲存 question_id 與 option_id，不關心題目內容。
"""
import json
import random
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import TypeAdapter

from core.exceptions import DeckNotFound, InvalidQuestionSequence
from schemas import Question

DECKS_DIR = Path(__file__).parent / "decks"

_questions_adapter = TypeAdapter(List[Question])


def available_decks() -> List[str]:
    return sorted(p.stem for p in DECKS_DIR.glob("*.json"))


@lru_cache()
def load_deck(deck_id: str) -> List[Question]:
    """
    讀取題庫（依檔案順序）

    每題必須剛好 4 個選項，格式錯誤時 pydantic 會直接拋出 ValidationError。

    異常：
        DeckNotFound: 題庫不存在
    """
    if deck_id not in available_decks():
        raise DeckNotFound(deck_id)

    with open(DECKS_DIR / f"{deck_id}.json", encoding="utf-8") as f:
        raw = json.load(f)
    return _questions_adapter.validate_python(raw)


def pick_question_ids(deck_id: str, count: int) -> List[str]:
    """
    從題庫隨機抽出 count 題（不重複），作為本場的題目順序

    異常：
        DeckNotFound: 題庫不存在
        InvalidQuestionSequence: 題庫題數不足
    """
    questions = load_deck(deck_id)
    if len(questions) < count:
        raise InvalidQuestionSequence(
            f"Deck {deck_id} has {len(questions)} questions, need {count}"
        )
    return [q.id for q in random.sample(questions, count)]
