import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admin_chat import __version__
from admin_chat.config import settings
from admin_chat.api import health, media, proxy

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Admin Chat",
    description="Dashboard server routes for the marketplace admin chat",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(proxy.router, prefix="/api/proxy", tags=["Proxy"])
app.include_router(media.router, prefix="/api/media", tags=["Media"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "admin_chat.main:app",
        host="0.0.0.0",
        port=3000,
        reload=settings.DEBUG
    )
