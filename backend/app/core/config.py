from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    data_dir: Path = Path(".doughdough")
    default_spreadsheet_id: str = "1B_gaW3csiWVCZG3FGsQiARSNZ_w_OPh1QZbwWWo-FNY"
    sheets_timeout_seconds: float = 30.0
    snooze_millis: int = 60_000
    countdown_interval_seconds: float = 1.0
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_prefix": "DOUGHDOUGH_",
        "extra": "ignore",
    }

    @property
    def session_prefs_path(self) -> Path:
        return self.data_dir / "recipe_session.json"

    @property
    def saved_recipes_path(self) -> Path:
        return self.data_dir / "saved_recipes.json"

@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
