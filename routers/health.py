# routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from services.realtime import RealtimeTransport, get_transport

router = APIRouter(tags=["Health"])


@router.get("/health", summary="Health check")
async def healthcheck(
    db: AsyncSession = Depends(get_db),
    transport: RealtimeTransport = Depends(get_transport),
):
    await db.execute(text("SELECT 1"))
    return {"status": "ok", "open_sockets": transport.connection_count}
