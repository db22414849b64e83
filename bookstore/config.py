from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv(".env")


class Settings(BaseSettings):
    app_name: str = "Book Store API"
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 3001
    books_file: str = "books.json"
    raise_on_write_error: bool = False
    log_level: str = "INFO"
    cors_origins: str = ""
    otel_enabled: bool = False

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    settings = Settings()
    if settings.port <= 0 or settings.port > 65535:
        raise RuntimeError(f"Invalid port configured: {settings.port}")
    if not settings.books_file.strip():
        raise RuntimeError("APP_BOOKS_FILE must not be empty")
    return settings
