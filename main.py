import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.database import engine
from core.errors import AppError
from models.base import Base
# Imported so every table is registered on Base.metadata
from models.user import User  # noqa: F401
from models.idea import Idea  # noqa: F401
from models.swipe import Swipe  # noqa: F401
from models.request import IdeaRequest  # noqa: F401
from models.match import Match  # noqa: F401
from models.message import Message  # noqa: F401
from services.realtime import RealtimeTransport

from routers.swipes import router as swipes_router
from routers.match import router as match_router
from routers.requests import router as requests_router
from routers.chat import router as chat_router
from routers.notifications import router as notifications_router
from routers.realtime import router as realtime_router
from routers.health import router as health_router

app = FastAPI(
    title="Foundrly Match Backend",
    version="0.1.0",
    description="Idea swipes, collaboration requests, matches, chat and live notifications",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("uvicorn.error")

# Single transport instance; handlers receive it through services.realtime.get_transport
app.state.transport = RealtimeTransport()


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} completed in {process_time:.2f} ms"
    )
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(swipes_router)
app.include_router(match_router)
app.include_router(requests_router)
app.include_router(chat_router)
app.include_router(notifications_router)
app.include_router(realtime_router)
app.include_router(health_router)


@app.on_event("startup")
async def on_startup():
    # Create all tables first
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/")
async def root():
    return {"message": "Foundrly Match Backend"}


@app.on_event("shutdown")
async def shutdown():
    # Close every pooled connection
    await engine.dispose()
