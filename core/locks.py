"""
並發控制工具

提供兩層鎖定機制，防止競態條件（Race Condition）：

1. Database-level：PostgreSQL 的 SELECT ... FOR UPDATE（悲觀鎖）
2. Process-level：每個 Room 一把 threading.Lock（SQLite 不支援 FOR UPDATE，
   with_for_update 在 SQLite 上會被忽略）

兩位玩家各自的 client 可能同時呼叫 reveal / advance，
所有「先檢查再修改」的操作都必須在同一個臨界區內完成。
"""
import inspect
import threading
import weakref
from contextlib import contextmanager
from functools import wraps

from sqlalchemy.orm import Session, Query

from models import Room, Round

_registry_lock = threading.Lock()
# 沒有請求持有時自動移除
_room_guards: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()


def with_room_lock(room_id: str, db: Session) -> Query:
    """
    鎖定一個 Room（行級鎖）

    使用場景：
    - 修改 Room 狀態時（start / advance）
    - 需要確保 Room 在整個 transaction 期間不被其他請求修改

    範例：
        room = with_room_lock(room_id, db).first()
        if not room:
            raise RoomNotFound(room_id)

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - populate_existing：同一個 session 先前讀過的物件也會重新載入
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Room).filter(
        Room.id == room_id
    ).with_for_update(nowait=False).populate_existing()


def with_round_lock(room_id: str, round_index: int, db: Session) -> Query:
    """
    鎖定一個 Round（行級鎖）

    使用場景：
    - 鎖定答案時（兩位玩家同時寫入同一回合）
    - 公布結果時（防止重複計分）

    範例：
        round_obj = with_round_lock(room_id, 0, db).first()
        if round_obj and not round_obj.revealed:
            round_obj.revealed = True
    """
    return db.query(Round).filter(
        Round.room_id == room_id,
        Round.round_index == round_index
    ).with_for_update(nowait=False).populate_existing()


def _guard_for(room_id: str) -> threading.Lock:
    with _registry_lock:
        guard = _room_guards.get(room_id)
        if guard is None:
            guard = threading.Lock()
            _room_guards[room_id] = guard
        return guard


@contextmanager
def room_guard(room_id: str):
    """
    同一 Room 的寫入操作在 process 內序列化

    必須包住整個 transaction（含 commit），否則另一個請求可能在
    commit 之前讀到舊狀態。
    """
    guard = _guard_for(str(room_id))
    with guard:
        yield


def release_room_guard(room_id: str) -> None:
    """房間刪除後移除對應的鎖"""
    with _registry_lock:
        _room_guards.pop(str(room_id), None)


def serialized_by_room(func):
    """
    Decorator：以參數 room_id 取得 room_guard

    必須放在 @transactional 外層：

        @staticmethod
        @serialized_by_room
        @transactional
        def reveal_round(db: Session, room_id: str, ...):
            ...
    """
    signature = inspect.signature(func)

    @wraps(func)
    def wrapper(*args, **kwargs):
        bound = signature.bind_partial(*args, **kwargs)
        room_id = bound.arguments.get("room_id")
        if room_id is None:
            raise ValueError(f"@serialized_by_room requires 'room_id' in {func.__name__}")
        with room_guard(room_id):
            return func(*args, **kwargs)

    return wrapper
