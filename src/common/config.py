import os
from typing import List
from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

# Load environment variables from the correct .env file
APP_ENV = os.getenv("APP_ENV", "development")
env_file = ".env.production" if APP_ENV == "production" else ".env"
load_dotenv(env_file)  # Load the .env file

class Settings(BaseSettings):
    APP_ENV: str = "development"
    DEBUG: bool = False
    DATABASE_URL: str
    ALLOWED_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "info"
    WORKERS: int = 1

    # Rate limiting
    DEFAULT_RATE_LIMIT: str = "60/minute"
    SUGGESTION_RATE_LIMIT: str = "30/minute"
    RATE_LIMIT_STORAGE_URI: str = "async+memory://"

    # Suggestion cache (empty = in-process)
    CACHE_URL: str = ""
    SUGGESTION_CACHE_TTL_SECONDS: int = 60

    # Search limits
    SEARCH_DEFAULT_LIMIT: int = 20
    SEARCH_MAX_LIMIT: int = 50
    SUGGESTION_DEFAULT_LIMIT: int = 5
    SUGGESTION_MAX_LIMIT: int = 10
    SEARCH_QUERY_MIN_LENGTH: int = 2
    SEARCH_QUERY_MAX_LENGTH: int = 100
    SEARCH_ENTITY_TIMEOUT_SECONDS: float = 5.0
    TEXT_SEARCH_CONFIG: str = "english"

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @model_validator(mode="after")
    def validate_shared_state(self):
        """Process-local limiter and cache state is only consistent with a single worker."""
        if self.APP_ENV == "production" and self.WORKERS > 1:
            in_process = []
            if "memory://" in self.RATE_LIMIT_STORAGE_URI:
                in_process.append("RATE_LIMIT_STORAGE_URI")
            if not self.CACHE_URL:
                in_process.append("CACHE_URL")
            if in_process:
                raise ValueError(
                    f"Shared storage required when running {self.WORKERS} workers: {', '.join(in_process)}"
                )
        return self

settings = Settings()
