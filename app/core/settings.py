"""
Core settings and environment variables for the EcoCheck backend.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "EcoCheck API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:19006"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    FIREBASE_STORAGE_BUCKET: Optional[str] = None

    # Mock DB mode for local development without Firebase credentials
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: Optional[str] = None  # JSON snapshot file; in-memory only when unset

    # Resolution workflow
    RESOLUTION_POINTS: int = 10
    AUTO_RESOLVE_ENABLED: bool = True
    AUTO_RESOLVE_AFTER_DAYS: int = 3
    AUTO_RESOLVE_INTERVAL_HOURS: float = 6.0
    AUTO_RESOLVE_INITIAL_DELAY_SECONDS: float = 60.0

    # Notifications
    # - Email goes through the SendGrid HTTP API when SENDGRID_API_KEY is set
    # - SMS_PROVIDER: "auto" (Semaphore if keyed, else TextBelt), "semaphore", "textbelt" or "none"
    NOTIFIER_TIMEOUT_SECONDS: float = 5.0
    SENDGRID_API_KEY: Optional[str] = None
    EMAIL_FROM: str = "ecocheck@example.com"
    SMS_PROVIDER: str = "none"
    SEMAPHORE_API_KEY: Optional[str] = None
    TEXTBELT_API_KEY: str = "textbelt"
    SMS_SENDER_NAME: str = "EcoCheck"

    # Evidence uploads (used when FIREBASE_STORAGE_BUCKET is not set)
    UPLOAD_DIR: str = "./uploads"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"


# Global settings instance
settings = Settings()
