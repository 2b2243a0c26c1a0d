"""
Deck API Endpoints

提供題庫內容給前端（題目文字、四個選項與圖片路徑）。
"""
from fastapi import APIRouter, HTTPException
import logging

from schemas import DeckResponse
from core.exceptions import MatchGameException
from services.deck_service import load_deck
from api.errors import http_error

router = APIRouter(prefix="/api/decks", tags=["decks"])
logger = logging.getLogger(__name__)


@router.get("/{deck_id}", response_model=DeckResponse)
def get_deck(deck_id: str):
    try:
        return DeckResponse(deck_id=deck_id, questions=load_deck(deck_id))

    except MatchGameException as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Failed to load deck {deck_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
