from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    STORE_BACKEND: str = Field("redis", description="redis | sql")
    REDIS_DSN: str = "redis://localhost:6379/0"
    REDIS_PREFIX: str = "practice"
    DB_DSN: str = Field(
        "sqlite+aiosqlite:///./practice.db",
        description="SQLAlchemy async DSN for the sql backend",
    )

    ROUND_SIZE: int = 3
    MIN_ROUND_SIZE: int = 3
    CORRECT_TRANSITION_MS: int = 750
    SKIP_TRANSITION_MS: int = 500
    LETTER_ALPHABET: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_file": "config/.env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
