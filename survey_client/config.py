import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    api_url: str
    public_origin: str
    storage_url: str
    upload_max_mb: float
    yes_label: str
    no_label: str


@lru_cache
def get_settings() -> Settings:
    """Read settings from the environment (and `.env`, if present)."""
    return Settings(
        api_url=os.getenv("SURVEY_API_URL", "http://localhost:8000").rstrip("/"),
        public_origin=os.getenv("SURVEY_PUBLIC_ORIGIN", "http://localhost:3000").rstrip("/"),
        storage_url=os.getenv("SURVEY_STORAGE_URL", "sqlite:///./survey_client.db"),
        upload_max_mb=float(os.getenv("SURVEY_UPLOAD_MAX_MB", "5")),
        yes_label=os.getenv("SURVEY_YES_LABEL", "Sí"),
        no_label=os.getenv("SURVEY_NO_LABEL", "No"),
    )
