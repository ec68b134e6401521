from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List
import os

class Settings(BaseSettings):
    # === DATABASE ===
    DATABASE_URL: str = Field(default=os.environ.get("DATABASE_URL", "sqlite:///./mms.db"), description="SQLAlchemy database URL (PostgreSQL in production)")

    # === JWT AUTH ===
    SECRET_KEY: str = Field(default=os.environ.get("SECRET_KEY", ""), description="Secret key for JWT token signing")
    ALGORITHM: str = Field(default=os.environ.get("ALGORITHM", "HS256"), description="JWT algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60)), description="JWT token expiration time in minutes")

    # === EMAIL ===
    EMAIL_HOST: str = Field(default=os.environ.get("EMAIL_HOST", ""), description="SMTP host; empty disables outbound mail")
    EMAIL_PORT: int = Field(default=int(os.environ.get("EMAIL_PORT", 587)), description="SMTP port (465 uses implicit TLS)")
    EMAIL_HOST_USER: str = Field(default=os.environ.get("EMAIL_HOST_USER", ""), description="SMTP username")
    EMAIL_HOST_PASSWORD: str = Field(default=os.environ.get("EMAIL_HOST_PASSWORD", ""), description="SMTP password")
    EMAIL_FROM: str = Field(default=os.environ.get("EMAIL_FROM", "noreply@example.org"), description="Email sender address")
    EMAIL_FROM_NAME: str = Field(default=os.environ.get("EMAIL_FROM_NAME", "Membership Council"), description="Email sender display name")
    EMAIL_SEND_TIMEOUT_SECONDS: float = Field(default=float(os.environ.get("EMAIL_SEND_TIMEOUT_SECONDS", 10)), description="Upper bound on a single email send")

    # === PUBLIC URLS ===
    FRONTEND_URL: str = Field(default=os.environ.get("FRONTEND_URL", "http://localhost:3000"), description="Frontend base URL used in email links")
    BACKEND_URL: str = Field(default=os.environ.get("BACKEND_URL", "http://localhost:8000"), description="Public URL of this API")

    # === OBJECT STORAGE ===
    STORAGE_BACKEND: str = Field(default=os.environ.get("STORAGE_BACKEND", "local"), description="'local' or 's3'")
    LOCAL_STORAGE_DIR: str = Field(default=os.environ.get("LOCAL_STORAGE_DIR", "storage/uploads"), description="Root directory for local uploads")
    S3_ENDPOINT_URL: str = Field(default=os.environ.get("S3_ENDPOINT_URL", ""), description="S3-compatible endpoint, empty for AWS")
    S3_ACCESS_KEY: str = Field(default=os.environ.get("S3_ACCESS_KEY", ""), description="S3 access key")
    S3_SECRET_KEY: str = Field(default=os.environ.get("S3_SECRET_KEY", ""), description="S3 secret key")
    S3_BUCKET: str = Field(default=os.environ.get("S3_BUCKET", ""), description="S3 bucket name")
    S3_REGION: str = Field(default=os.environ.get("S3_REGION", "us-east-1"), description="S3 region")
    UPLOAD_URL_EXPIRE_SECONDS: int = Field(default=int(os.environ.get("UPLOAD_URL_EXPIRE_SECONDS", 900)), description="Lifetime of presigned upload URLs")

    # === UPLOAD RATE LIMIT ===
    UPLOAD_RATE_LIMIT_MAX: int = Field(default=int(os.environ.get("UPLOAD_RATE_LIMIT_MAX", 20)), description="Uploads allowed per client per window")
    UPLOAD_RATE_LIMIT_WINDOW_SECONDS: int = Field(default=int(os.environ.get("UPLOAD_RATE_LIMIT_WINDOW_SECONDS", 900)), description="Upload rate-limit window")

    # === APPLICANTS ===
    VERIFICATION_TOKEN_HOURS: int = Field(default=int(os.environ.get("VERIFICATION_TOKEN_HOURS", 24)), description="Email verification token lifetime")

    # === CORS ===
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"], description="Allowed browser origins")

    # === DEBUG MODE ===
    DEBUG: bool = Field(default=os.environ.get("DEBUG", "True").lower() == "true", description="Debug mode")

    class Config:
        env_file = ".env"
        case_sensitive = False

# Create settings instance
settings = Settings()
