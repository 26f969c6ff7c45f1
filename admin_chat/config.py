from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Upstream services
    ADMIN_SERVICE_URL: str = "http://localhost:4800/api/v1"
    CHAT_SERVICE_URL: str = "http://localhost:4700/api/v1"
    CHAT_WS_URL: str = "ws://localhost:5800"
    CHAT_OPTIONAL: bool = True

    # Dashboard server (proxy + media upload) as seen by the chat client
    DASHBOARD_URL: str = "http://localhost:3000"
    REQUEST_TIMEOUT: float = 30.0

    # Session tokens
    SECRET_KEY: str = "your-super-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"

    # Chat widget
    MAX_FILE_SIZE_MB: int = 10
    MESSAGES_PAGE_SIZE: int = 50
    TYPING_INDICATOR_TTL: float = 3.0  # seconds
    WS_MAX_RECONNECT_ATTEMPTS: int = 5
    WS_CONNECT_TIMEOUT: float = 5.0
    WS_MAX_BACKOFF: float = 30.0

    # Optional static access token for headless clients
    CHAT_ACCESS_TOKEN: Optional[str] = None

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:3300"]

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    class Config:
        env_file = ".env"

settings = Settings()
