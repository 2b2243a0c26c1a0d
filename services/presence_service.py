"""
Presence：由 last_seen 推導玩家是否在線

不儲存、不排程，也不會把離線玩家踢出房間。
前端每 heartbeat_interval_sec 秒呼叫一次 heartbeat。
"""
from typing import Optional

from database import settings
from models import now_ms


def is_player_online(last_seen: int, now: Optional[int] = None,
                     timeout_sec: Optional[int] = None) -> bool:
    """
    判斷玩家是否在線

    參數：
        last_seen: 最後一次 heartbeat（epoch 毫秒）
        now: 目前時間（epoch 毫秒），預設為現在
        timeout_sec: 逾時秒數，預設為 settings.presence_timeout_sec

    返回：
        now - last_seen <= timeout 時為 True
    """
    if last_seen is None:
        return False
    if now is None:
        now = now_ms()
    if timeout_sec is None:
        timeout_sec = settings.presence_timeout_sec
    return now - last_seen <= timeout_sec * 1000
