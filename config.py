import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv, find_dotenv

# Load environment variables (e.g., Mistral API key)
load_dotenv(find_dotenv())


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HR decisioning engine."""
    mistral_api_key: Optional[str] = None
    fallback_model: str = "mistral-small-latest"
    fallback_temperature: float = 0.2
    fallback_timeout_seconds: float = 20.0
    cache_ttl_seconds: float = 60.0
    history_window: int = 6
    store_path: str = "hr_store.json"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            mistral_api_key=os.getenv("MISTRAL_API_KEY"),
            fallback_model=os.getenv("HR_FALLBACK_MODEL", cls.fallback_model),
            fallback_temperature=float(os.getenv("HR_FALLBACK_TEMPERATURE", cls.fallback_temperature)),
            fallback_timeout_seconds=float(
                os.getenv("HR_FALLBACK_TIMEOUT_SECONDS", cls.fallback_timeout_seconds)
            ),
            cache_ttl_seconds=float(os.getenv("HR_CACHE_TTL_SECONDS", cls.cache_ttl_seconds)),
            history_window=int(os.getenv("HR_HISTORY_WINDOW", cls.history_window)),
            store_path=os.getenv("HR_STORE_PATH", cls.store_path),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
