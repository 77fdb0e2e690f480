"""
Quiz Settings

Environment-driven configuration. Values come from the process environment,
with a local .env file loaded first when present.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


DEFAULT_FUNCTION_NAME = "adaptive-quiz"
DEFAULT_MASTERY_TABLE = "user_mastery"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_SESSION_TTL = 3600.0
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
]


def _parse_seconds(name: str, default: float) -> Optional[float]:
    """Parse a duration variable; empty or 0 disables it."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value or None


@dataclass
class QuizSettings:
    """Runtime configuration for the quiz backend and its collaborators."""
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    supabase_jwt_secret: Optional[str] = None
    function_name: str = DEFAULT_FUNCTION_NAME
    mastery_table: str = DEFAULT_MASTERY_TABLE
    request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT
    # Idle quizzes and unread results are dropped after this many seconds
    session_ttl: Optional[float] = DEFAULT_SESSION_TTL
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "QuizSettings":
        if load_env_file:
            load_dotenv()

        origins = os.getenv("CORS_ORIGINS")
        cors_origins = (
            [origin.strip() for origin in origins.split(",") if origin.strip()]
            if origins
            else list(DEFAULT_CORS_ORIGINS)
        )

        return cls(
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_service_key=os.getenv("SUPABASE_SERVICE_KEY"),
            supabase_jwt_secret=os.getenv("SUPABASE_JWT_SECRET"),
            function_name=os.getenv("ADAPTIVE_QUIZ_FUNCTION", DEFAULT_FUNCTION_NAME),
            mastery_table=os.getenv("MASTERY_TABLE", DEFAULT_MASTERY_TABLE),
            request_timeout=_parse_seconds("QUIZ_REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT),
            session_ttl=_parse_seconds("QUIZ_SESSION_TTL_SECONDS", DEFAULT_SESSION_TTL),
            cors_origins=cors_origins,
        )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)
