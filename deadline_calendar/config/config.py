"""Configuration management for the deadline calendar."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

# Required only when STORAGE_BACKEND=supabase
SUPABASE_VARS = [
    "SUPABASE_URL",
    "SUPABASE_KEY",
]

STORAGE_BACKENDS = ("json", "supabase")


class Config(BaseSettings):
    """Application configuration from environment variables."""

    storage_backend: str = "json"
    data_dir: Path = Path.home() / ".deadline_calendar"
    projects_file: str = "projects.json"
    templates_file: Optional[str] = None

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    upcoming_limit: int = 10
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": False}

    @property
    def projects_path(self) -> Path:
        path = Path(self.projects_file)
        return path if path.is_absolute() else self.data_dir / path


def validate_config() -> Config:
    """Load and validate configuration from environment.

    Raises ValueError with descriptive message listing ALL missing
    variables the selected storage backend needs (not just the first one).
    """
    config = Config()
    backend = config.storage_backend.lower()
    if backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown STORAGE_BACKEND '{config.storage_backend}'. "
            f"Expected one of: {', '.join(STORAGE_BACKENDS)}."
        )

    if backend == "supabase":
        missing = [
            var for var in SUPABASE_VARS
            if not getattr(config, var.lower())
        ]
        if missing:
            names = ", ".join(missing)
            raise ValueError(
                f"Missing required environment variable(s): {names}. "
                "Please set them in your .env file or environment."
            )
    return config


def load_config() -> Config:
    """Load configuration from environment (startup entry point)."""
    return validate_config()
