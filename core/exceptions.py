"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

分類（kind 是給前端的機器可讀代碼）：
- NotFoundError：room / round / player 不存在
- InvalidStateError：在不允許的 Room/Round 狀態下操作
- PreconditionFailedError：人數、準備狀態、輸入長度等前置條件不符
- ConflictError：名稱重複、房間已滿、房間代碼碰撞
"""


class MatchGameException(Exception):
    """所有遊戲異常的基類"""
    kind = "error"


class NotFoundError(MatchGameException):
    kind = "not_found"


class InvalidStateError(MatchGameException):
    kind = "invalid_state"


class PreconditionFailedError(MatchGameException):
    kind = "precondition_failed"


class ConflictError(MatchGameException):
    kind = "conflict"


# ============ Room 相關異常 ============

class RoomNotFound(NotFoundError):
    """房間不存在"""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class RoomNotAcceptingPlayers(InvalidStateError):
    """房間不接受新玩家加入（已經開始遊戲）"""
    pass


class RoomFull(ConflictError):
    """房間已有兩位玩家"""
    pass


class RoomCodeExhausted(ConflictError):
    """多次重試仍無法產生不重複的房間代碼"""
    pass


class InvalidPlayerCount(PreconditionFailedError):
    """玩家數量不符合要求（必須剛好 2 人）"""
    pass


class PlayersNotReady(PreconditionFailedError):
    pass


class InvalidQuestionSequence(PreconditionFailedError):
    """題目數量與房間回合數不一致"""
    pass


# ============ 狀態轉換異常 ============

class InvalidStateTransition(InvalidStateError):
    """非法的狀態轉換"""
    pass


# ============ Player 相關異常 ============

class PlayerNotFound(NotFoundError):
    """玩家不存在"""
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


class PlayerNotInRoom(PreconditionFailedError):
    """玩家不屬於這個房間"""
    pass


class DuplicatePlayerName(ConflictError):
    """同一房間內名稱重複"""
    pass


# ============ Round 相關異常 ============

class RoundNotFound(NotFoundError):
    """回合不存在"""
    def __init__(self, room_id, round_index):
        self.room_id = room_id
        self.round_index = round_index
        super().__init__(f"Round {round_index} of room {room_id} not found")


class RoundAlreadyRevealed(InvalidStateError):
    """回合已公布，答案與分數不可再變更"""
    pass


class AnswersNotLocked(PreconditionFailedError):
    """兩位玩家都鎖定答案後才能公布"""
    pass


# ============ Deck 相關異常 ============

class DeckNotFound(NotFoundError):
    def __init__(self, deck_id):
        self.deck_id = deck_id
        super().__init__(f"Deck {deck_id} not found")
