"""Application configuration from environment variables.

Engine tunables (durations, buffers, lead time) live in the settings table,
see app.services.engine_config.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "ParishBook"
    debug: bool = True
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://parishbook:parishbook@db:5432/parishbook"
    database_echo: bool = False

    # Parish locale
    timezone: str = "America/Sao_Paulo"
    weekday_locale: str = "pt_BR"

    model_config = {"env_prefix": "PB_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
