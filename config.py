"""
Application configuration

All environment-driven settings live on a single Settings object that is
built once at startup and handed to the app factory. Nothing else in the
codebase reads os.environ directly.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Request
from pydantic import BaseModel, Field


class Settings(BaseModel):
    mongo_uri: str = Field("mongodb://localhost:27017/ecommerce", description="MongoDB connection string")
    database_name: str = Field("ecommerce", description="Used when the URI names no database")
    port: int = Field(5000, description="HTTP listening port")
    environment: str = Field("development", description="development | production")
    jwt_secret: str = Field("dev-secret-change-me", description="HS256 signing key")
    jwt_expires_minutes: int = Field(60 * 24 * 30, ge=1)
    stripe_secret_key: Optional[str] = None
    stripe_publishable_key: Optional[str] = None
    page_size: int = Field(8, ge=1, description="Products per page")
    uploads_dir: Path = Path("uploads")
    frontend_build_dir: Path = Path("frontend/build")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env") -> "Settings":
        if env_file:
            load_dotenv(env_file)
        values = {
            "mongo_uri": os.getenv("MONGO_URI") or os.getenv("DATABASE_URL"),
            "database_name": os.getenv("DATABASE_NAME"),
            "port": os.getenv("PORT"),
            "environment": os.getenv("ENVIRONMENT") or os.getenv("NODE_ENV"),
            "jwt_secret": os.getenv("JWT_SECRET"),
            "jwt_expires_minutes": os.getenv("JWT_EXPIRES_MINUTES"),
            "stripe_secret_key": os.getenv("STRIPE_SECRET_KEY"),
            "stripe_publishable_key": os.getenv("STRIPE_PUBLISHABLE_KEY"),
            "page_size": os.getenv("PAGE_SIZE"),
            "uploads_dir": os.getenv("UPLOADS_DIR"),
            "frontend_build_dir": os.getenv("FRONTEND_BUILD_DIR"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        origins = os.getenv("CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]
        # Unset variables fall back to the field defaults
        return cls(**{k: v for k, v in values.items() if v is not None})


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
