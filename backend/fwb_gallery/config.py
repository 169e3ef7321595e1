from __future__ import annotations
import os
from pydantic import BaseModel

DEFAULT_CALLBACK_TOKEN = "dev-callback-token"

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "fwb-gallery-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "FWB Gallery")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/fwb_gallery_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))
    refresh_ttl_min: int = int(os.getenv("REFRESH_TTL_MIN", "10080"))  # 7d

    # Uploads are stored by the front end; only relative keys under this prefix are accepted
    uploads_prefix: str = os.getenv("UPLOADS_PREFIX", "uploads/")

    # Thumbnail hand-off (worker lives outside this service)
    thumbnail_queue: str = os.getenv("THUMBNAIL_QUEUE", "thumbnails")
    thumbnail_job: str = os.getenv("THUMBNAIL_JOB", "thumbnails.generate")
    thumbnail_callback_token: str = os.getenv("THUMBNAIL_CALLBACK_TOKEN", DEFAULT_CALLBACK_TOKEN)

    # Serializing locks (public id allocation, vote casting)
    lock_timeout_seconds: float = float(os.getenv("LOCK_TIMEOUT_SECONDS", "5"))

    gallery_page_size: int = int(os.getenv("GALLERY_PAGE_SIZE", "20"))
    max_active_submissions: int = int(os.getenv("MAX_ACTIVE_SUBMISSIONS", "3"))
    public_id_prefix: str = os.getenv("PUBLIC_ID_PREFIX", "FWB")

settings = Settings()
