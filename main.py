from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import run_in_threadpool
from contextlib import asynccontextmanager
import asyncio
import logging

from database import Base, engine, settings, SessionLocal
from schemas import ConfigResponse
from services.cleanup_service import purge_stale_rooms
from api import rooms, players, rounds, decks

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


def _purge_once() -> int:
    db = SessionLocal()
    try:
        return purge_stale_rooms(db, settings.room_ttl_hours)
    finally:
        db.close()


async def cleanup_stale_rooms():
    """定期清理閒置房間（room_ttl_hours > 0 才會啟動）"""
    while True:
        await asyncio.sleep(settings.cleanup_interval_sec)
        try:
            await run_in_threadpool(_purge_once)
        except Exception as e:
            logger.error(f"Stale room cleanup failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 在應用啟動時建立資料庫表
    Base.metadata.create_all(bind=engine)

    cleanup_task = None
    if settings.room_ttl_hours > 0:
        cleanup_task = asyncio.create_task(cleanup_stale_rooms())
        logger.info(f"Stale room cleanup enabled (ttl={settings.room_ttl_hours}h)")
    yield
    # Shutdown
    if cleanup_task:
        cleanup_task.cancel()


app = FastAPI(
    title="Match Game API",
    description="Backend API for the two-player image quiz matching game",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(rooms.router)
app.include_router(players.router)
app.include_router(rounds.router)
app.include_router(decks.router)


@app.get("/")
def root():
    return {"message": "Match Game API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/api/config", response_model=ConfigResponse)
def client_config():
    """前端使用的政策常數（heartbeat 間隔、離線判定秒數）"""
    return ConfigResponse(
        total_rounds=settings.total_rounds,
        default_deck_id=settings.default_deck_id,
        presence_timeout_sec=settings.presence_timeout_sec,
        heartbeat_interval_sec=settings.heartbeat_interval_sec
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
