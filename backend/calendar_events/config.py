from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Calendar Events API"
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    # Comma-separated origins for CORS. "*" opens the API to any frontend.
    cors_allow_origins: str = "*"
    log_level: str = "INFO"
    # Runs CREATE TABLE IF NOT EXISTS for the events table once the pool opens.
    create_schema_on_startup: bool = True

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


settings = Settings()
