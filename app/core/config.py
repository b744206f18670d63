from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from typing import Optional

load_dotenv()

class Settings(BaseSettings):
    ENVIRONMENT: str = "development"
    DATABASE_URL: str = "sqlite:///./characters.db"

    LOG_LEVEL: str = "INFO"
    # Empty disables the rotating log file
    LOG_FILE: str = "app.log"
    LOG_MAX_BYTES: int = 1024 * 1024
    LOG_BACKUP_COUNT: int = 3

    # Staging area for multipart uploads before processing
    UPLOAD_DIR: str = "uploads/temp"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # Remote object storage (Bunny.net storage API + pull zone)
    BUNNY_API_KEY: str = ""
    BUNNY_STORAGE_ZONE: str = "leome"
    BUNNY_STORAGE_BASE_URL: str = "https://storage.bunnycdn.com"
    BUNNY_CDN_BASE_URL: str = "https://leome.b-cdn.net"
    REMOTE_STORAGE_TIMEOUT_SECONDS: float = 30.0

    # Local fallback storage, served by the app itself
    LOCAL_STORAGE_DIR: str = "public/images"
    LOCAL_STATIC_ROUTE: str = "/images"

    # Image processing profiles
    PROFILE_IMAGE_WIDTH: int = 400
    PROFILE_IMAGE_HEIGHT: int = 400
    BACKGROUND_IMAGE_WIDTH: int = 1200
    BACKGROUND_IMAGE_HEIGHT: int = 800
    IMAGE_QUALITY: int = 85

    # Gallery prefixes in the storage zone
    VIDEOS_PREFIX: str = "videos/"
    CAROUSEL_PREFIX: str = "carasouls/"

    # Admin dashboard (static shared secret)
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin123"
    ADMIN_API_KEY: str = "leome-admin-key"

    # Chat completion provider
    GOOGLE_API_KEY: Optional[str] = None
    MODEL_NAME: str = "gemini-2.0-flash"
    LLM_MAX_OUTPUT_TOKENS: int = 350
    LLM_TEMPERATURE: float = 1.5
    LLM_TOP_P: float = 0.95
    LLM_HISTORY_TURNS: int = 12

    class Config:
        env_file = ".env"

settings = Settings()
