from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Required at request time; a missing key is reported as 503.
    GROQ_API_KEY: str | None = None

    GROQ_API_URL: str = "https://api.groq.com/openai/v1/chat/completions"
    GROQ_MODEL: str = "llama3-8b-8192"
    GROQ_TIMEOUT_SECONDS: float = 30.0
    GROQ_MAX_RETRIES: int = 2
    GROQ_RETRY_BACKOFF_SECONDS: float = 1.0

    GROQ_TEMPERATURE: float = 0.1
    GROQ_TOP_P: float = 0.9
    GROQ_MAX_TOKENS: int = 1000

    MAX_RECEIPT_TEXT_LENGTH: int = 10_000
    MAX_RETRIES_LIMIT: int = 5

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
