"""
命名服務：生成與格式化 Room Code

純計算邏輯，不涉及狀態轉換
"""
import random
import re
import string

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def generate_room_code() -> str:
    """
    生成隨機的 6 位房間代碼（大寫字母 + 數字）

    範例：AB12CD, 7XQ2MZ

    注意：
    - 不檢查唯一性（由 RoomManager.create_room 查表並重試）
    - 36^6 ≈ 21 億種可能
    """
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


def normalize_room_code(raw: str) -> str:
    """
    使用者輸入 -> 儲存格式

    不分大小寫，去掉空白與符號：
        normalize_room_code("abc 123") -> "ABC123"
        normalize_room_code(" xy-z9 8q") -> "XYZ98Q"
    """
    return _NON_ALNUM.sub('', (raw or '').upper())


def format_room_code(code: str) -> str:
    """
    顯示格式：每 3 個字元一組

        format_room_code("ABC123") -> "ABC 123"
    """
    code = normalize_room_code(code)
    return ' '.join(code[i:i + 3] for i in range(0, len(code), 3))


def is_valid_room_code(code: str) -> bool:
    return len(code) == ROOM_CODE_LENGTH and not _NON_ALNUM.search(code)
