import os
import logging
import logging.config
import asyncio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime
from sqlalchemy import text
from contextlib import asynccontextmanager

from arq import create_pool
from arq.connections import RedisSettings
from app.core import config
from app.core.errors import TaskBoardError
from app.db.base import Base
from app.db.session import engine, async_session
from app.api.routes import boards, columns, cron, notifications, system, tasks

# Load logging config if present
if os.path.exists("logging.conf"):
    logging.config.fileConfig("logging.conf", disable_existing_loggers=False)  # type: ignore
logger = logging.getLogger("root")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")

    try:
        app.state.redis = await create_pool(RedisSettings.from_dsn(config.REDIS_URL))
    except Exception as e:
        # Notifications are best-effort; the board works without the queue.
        logger.warning(f"Redis unavailable, background jobs disabled: {e}")
        app.state.redis = None

    yield  # App runs here

    if app.state.redis is not None:
        await app.state.redis.close()
    await engine.dispose()
    logger.info("Shutting down...")


# Create FastAPI app with lifespan
app = FastAPI(
    title="Task Board API",
    version="1.0",
    lifespan=lifespan,
)

if config.ENV == "development":
    origins = config.DEV_ORIGINS
    logger.info("CORS allowed for development environment")
else:
    origins = config.FRONTEND_ORIGINS
    logger.info("Running in production environment - CORS restricted")

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(TaskBoardError)
async def task_board_error_handler(request: Request, exc: TaskBoardError):
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


# API routes
app.include_router(boards.router)
app.include_router(columns.router)
app.include_router(tasks.router)
app.include_router(notifications.router)
app.include_router(cron.router)
app.include_router(system.router)


@app.api_route("/api/health", methods=["GET", "HEAD"])
async def health(request: Request):
    status = {
        "api": "ok",
        "database": None,
        "redis": None,
        "worker": None,
    }

    http_status = 200

    # --- Database check ---
    try:
        async with async_session() as db:
            await db.execute(text("SELECT 1"))
        status["database"] = "connected"
    except Exception as e:
        status["database"] = f"error: {e}"
        http_status = 503

    # --- Redis check with lazy reconnect + backoff ---
    try:
        redis = getattr(request.app.state, "redis", None)
        try:
            if redis is None:
                raise ConnectionError("no pool")
            await redis.ping()
            status["redis"] = "connected"
        except Exception:
            logger.warning("Redis connection lost - attempting reconnect...")
            redis = await reconnect_redis_with_backoff()
            request.app.state.redis = redis
            status["redis"] = "reinitialized"
    except Exception as e:
        status["redis"] = f"error: {e}"
        http_status = 503
        return JSONResponse(content=status, status_code=http_status)

    # --- Worker heartbeat ---
    try:
        heartbeat = await request.app.state.redis.get("arq:heartbeat")
        if heartbeat:
            last_heartbeat = datetime.fromtimestamp(float(heartbeat))
            status["worker"] = f"running (last heartbeat {last_heartbeat.isoformat()})"
        else:
            status["worker"] = "not reporting"
            http_status = 503
    except Exception as e:
        status["worker"] = f"error: {e}"
        http_status = 503

    return JSONResponse(content=status, status_code=http_status)


async def reconnect_redis_with_backoff(max_retries: int = 3, base_delay: float = 1.0):
    """
    Attempt to reconnect to Redis using exponential backoff.
    Returns the new Redis pool or raises after all retries fail.
    """
    for attempt in range(max_retries):
        try:
            redis = await create_pool(RedisSettings.from_dsn(config.REDIS_URL))
            await redis.ping()
            logger.info(f"Redis reconnected on attempt {attempt + 1}")
            return redis
        except Exception as e:
            wait_time = base_delay * (2**attempt)
            logger.warning(f"Redis reconnect attempt {attempt + 1} failed: {e}")
            await asyncio.sleep(wait_time)
    raise RuntimeError("Failed to reconnect to Redis after multiple attempts")
