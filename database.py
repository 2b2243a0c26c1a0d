from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
import logging

from core.exceptions import MatchGameException

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./match_game.db"

    # 遊戲規則
    total_rounds: int = 10
    default_deck_id: str = "soft-sweet-visual"

    # Presence 政策（由前端使用，後端不主動踢人）
    presence_timeout_sec: int = 20
    heartbeat_interval_sec: int = 10

    room_code_max_attempts: int = 10

    # 0 表示停用閒置房間清理
    room_ttl_hours: int = 0
    cleanup_interval_sec: int = 300

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite 需要特殊設定：connect_args={"check_same_thread": False}
# 這允許多執行緒存取同一個 SQLite 連線（FastAPI 的多執行緒環境需要）
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def some_business_logic(db: Session, ...):
            room = Room(...)
            db.add(room)
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback
        - 異常會被重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except MatchGameException as e:
            # 業務規則拒絕，不需要 stack trace
            logger.warning(f"Transaction rejected in {func.__name__}: {e}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
