from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./formbuilder.db"

    # Security
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12
    SESSION_COOKIE_NAME: str = "formbuilder_session"
    COOKIE_SECURE: bool = False
    ADMIN_LANDING_PATH: str = "/admin"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Reverse geocoding (Nominatim-compatible endpoint)
    GEOCODER_URL: str = "https://nominatim.openstreetmap.org/reverse"
    GEOCODER_LANGUAGE: str = "ar"
    GEOCODER_TIMEOUT_SECONDS: float = 5.0
    GEOCODER_USER_AGENT: str = "FormBuilder/1.0"

    # Map tiles
    MAP_TILE_URL: str = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    MAP_ATTRIBUTION: str = "&copy; OpenStreetMap contributors"

    # Manifest
    APP_NAME: str = "لوحة التحكم - Forms Builder"
    APP_SHORT_NAME: str = "لوحة التحكم"
    THEME_COLOR: str = "#2563eb"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
