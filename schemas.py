"""
Pydantic schemas：API 的 request / response 格式
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============ Deck ============

class Option(BaseModel):
    id: str
    label: str
    image: str
    alt: Optional[str] = None


class Question(BaseModel):
    id: str
    text: str
    options: List[Option] = Field(..., min_length=4, max_length=4)


class DeckResponse(BaseModel):
    deck_id: str
    questions: List[Question]


# ============ Room ============

def _strip_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("name must not be blank")
    return value


class RoomCreate(BaseModel):
    host_name: str = Field(..., max_length=64)
    host_avatar: str = Field(..., min_length=1, max_length=16)

    @field_validator("host_name")
    @classmethod
    def host_name_not_blank(cls, v: str) -> str:
        return _strip_name(v)


class RoomCreateResponse(BaseModel):
    room_id: str
    code: str
    display_code: str
    host_player_id: str


class RoomSchema(BaseModel):
    id: str
    code: str
    display_code: str
    status: str
    deck_id: str
    total_rounds: int
    created_at: int
    host_id: Optional[str]
    current_round_index: int
    question_sequence: List[str]
    state_version: int


class StartGame(BaseModel):
    deck_id: Optional[str] = None
    # 省略時由伺服器從題庫抽題
    question_ids: Optional[List[str]] = None


# ============ Player ============

class PlayerJoin(BaseModel):
    name: str = Field(..., max_length=64)
    avatar: str = Field(..., min_length=1, max_length=16)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _strip_name(v)


class PlayerJoinResponse(BaseModel):
    room_id: str
    player_id: str


class PlayerSchema(BaseModel):
    id: str
    room_id: str
    name: str
    avatar: str
    ready: bool
    last_seen: int
    online: bool


class RoomWithPlayers(BaseModel):
    room: RoomSchema
    players: List[PlayerSchema]


class ReadyUpdate(BaseModel):
    ready: bool


class HeartbeatResponse(BaseModel):
    player_id: str
    last_seen: int


# ============ Round ============

class RoundSchema(BaseModel):
    room_id: str
    round_index: int
    question_id: str
    locked: Dict[str, bool]
    answers: Dict[str, str]
    both_locked: bool
    score_delta: Optional[int]
    revealed: bool


class AnswerLock(BaseModel):
    player_id: str
    option_id: str = Field(..., min_length=1, max_length=64)


class RevealRequest(BaseModel):
    # 省略時使用房間內的兩位玩家
    player_a: Optional[str] = None
    player_b: Optional[str] = None


class RevealResponse(BaseModel):
    score_delta: int


class AdvanceRequest(BaseModel):
    # client 目前看到的回合；與伺服器不同時視為重複呼叫，不做任何事
    # 省略時改以「目前回合是否已公布」判斷
    expected_index: Optional[int] = None


class AdvanceResponse(BaseModel):
    status: str
    round_index: int
    advanced: bool


class ActionResponse(BaseModel):
    status: str


# ============ Score / State ============

class ScoreResponse(BaseModel):
    total_score: int
    total_rounds: int
    percentage: int
    message: str


class RoundHistoryEntry(BaseModel):
    round_index: int
    question_id: str
    answers: Dict[str, str]
    matched: bool


class RoomStateResponse(BaseModel):
    room: RoomSchema
    players: List[PlayerSchema]
    current_round: Optional[RoundSchema]
    rounds: List[RoundSchema]
    score: ScoreResponse


class ConfigResponse(BaseModel):
    total_rounds: int
    default_deck_id: str
    presence_timeout_sec: int
    heartbeat_interval_sec: int
