from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # App
    app_env: str = "development"
    base_url: str = "https://evidence.example.org"

    # Database
    database_url: str

    # Evidence submissions
    # When disabled the public submission endpoint answers 503
    evidence_submissions_enabled: bool = True
    evidence_rate_limit_window_seconds: int = 60

    # Math challenge
    challenge_ttl_seconds: int = 2 * 60 * 60
    challenge_subtraction_probability: float = 0.4
    challenge_operand_min: int = 2
    challenge_operand_max: int = 9
    challenge_purge_interval_minutes: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
