from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
from dotenv import load_dotenv

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1"
DEFAULT_MODEL = "google/gemini-2.5-flash"


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    # Everything the pipelines need, built once and handed to each component
    ai_api_key: Optional[str] = None
    ai_base_url: str = DEFAULT_GATEWAY_URL
    ai_model: str = DEFAULT_MODEL
    ai_timeout: float = 60.0
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    store_timeout: float = 10.0
    listings_path: str = "data/listings.csv"
    fetch_timeout: float = 15.0
    allowed_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @property
    def uses_hosted_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read settings from the environment (and a .env file when env is not given)"""
        if env is None:
            load_dotenv()
            env = os.environ
        origins = tuple(o.strip() for o in env.get("ALLOWED_ORIGINS", "*").split(",") if o.strip())
        return cls(
            ai_api_key=env.get("AI_GATEWAY_API_KEY") or env.get("LOVABLE_API_KEY") or None,
            ai_base_url=env.get("AI_GATEWAY_URL") or DEFAULT_GATEWAY_URL,
            ai_model=env.get("AI_MODEL") or DEFAULT_MODEL,
            ai_timeout=_float(env, "AI_TIMEOUT", 60.0),
            supabase_url=(env.get("SUPABASE_URL") or "").rstrip("/") or None,
            supabase_key=env.get("SUPABASE_SERVICE_ROLE_KEY") or None,
            store_timeout=_float(env, "STORE_TIMEOUT", 10.0),
            listings_path=env.get("LISTINGS_PATH") or "data/listings.csv",
            fetch_timeout=_float(env, "FETCH_TIMEOUT", 15.0),
            allowed_origins=origins or ("*",),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )
