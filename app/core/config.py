from typing import List, Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Recipe CMS API"
    DATABASE_URL: str = "sqlite:///./recipes.db"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # JWT (no fallback secret: auth-gated routes fail closed when unset)
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24h

    # Back-office login (argon2 hash, see passlib)
    ADMIN_USERNAME: Optional[str] = None
    ADMIN_PASSWORD_HASH: Optional[str] = None

    # S3-compatible object storage (AWS S3, Cloudflare R2, ...)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "auto"
    S3_ENDPOINT_URL: Optional[str] = None
    S3_BUCKET: str = "recipe-images"

    # Public prefix under which stored objects are served, e.g. /images/uploads/abc.jpg
    IMAGES_BASE_PATH: str = "/images"

    def public_image_url(self, key: str) -> str:
        return f"{self.IMAGES_BASE_PATH.rstrip('/')}/{key.lstrip('/')}"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
