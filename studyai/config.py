"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./studyai.db"

    # Redis (only used when RATE_LIMIT_BACKEND=redis)
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "StudyAI Pipeline"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    ALLOWED_ORIGINS: str = "http://localhost:3000"  # Comma-separated

    # Inbound webhook signing (handlers verify, originating actions sign)
    WEBHOOK_SECRET: Optional[str] = None
    CHAT_WEBHOOK_URL: str = "http://localhost:8000/api/webhooks/chat"
    FILE_UPLOAD_WEBHOOK_URL: str = "http://localhost:8000/api/webhooks/file-upload"

    # External workflow engine (unset = nothing to do)
    WORKFLOW_WEBHOOK_SECRET: Optional[str] = None
    CHAT_WORKFLOW_URL: Optional[str] = None
    PDF_PROCESSOR_URL: Optional[str] = None
    FLASHCARDS_WORKFLOW_URL: Optional[str] = None
    FILE_UPLOAD_WORKFLOW_URL: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = 120.0

    # Rate Limiting
    CHAT_RATE_LIMIT: int = 30
    FILE_UPLOAD_RATE_LIMIT: int = 10
    RATE_LIMIT_WINDOW_MINUTES: int = 1
    RATE_LIMIT_FAIL_OPEN: bool = True
    RATE_LIMIT_BACKEND: str = "database"  # "database" or "redis"

    # Object storage
    STORAGE_DIR: str = "./storage"
    STORAGE_BASE_URL: str = "http://localhost:8000/storage"
    STORAGE_SIGNING_SECRET: str = "dev-storage-secret-change-in-production"
    SIGNED_URL_EXPIRES_IN: int = 604800  # 7 days
    MAX_FILE_SIZE: int = 50 * 1024 * 1024  # 50MB

    # Chat
    CHAT_HISTORY_LIMIT: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT != "production"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Dependency returning the active settings"""
    return settings
