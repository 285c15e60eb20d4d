from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/fuelcore"
    api_key: str | None = None
    log_level: str = "INFO"

    # Reset windows. Daily and weekly boundaries are computed in this zone
    # unless a request passes its own (user-profile) timezone.
    default_tz: str = "UTC"
    reset_weekday: int = 0  # 0 = Monday ... 6 = Sunday
    reset_hour: int = 0  # Local hour the weekly window rolls over

    # Challenge progression
    max_active_challenges: int = 2
    recommendation_limit: int = 2  # Recommended challenges surfaced once Tier 0 is done

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
