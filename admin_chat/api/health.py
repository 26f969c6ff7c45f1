from datetime import datetime, timezone

from fastapi import APIRouter

from admin_chat import __version__

router = APIRouter()


@router.get("/")
async def root():
    return {"message": "Admin chat dashboard server is running", "version": __version__, "docs": "/docs"}


@router.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc)}
