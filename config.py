import os
from functools import lru_cache
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    remote_url: Optional[str] = None
    remote_timeout: float = 30
    ping_url: str = "https://www.google.com/generate_204"
    ping_timeout: float = 3
    strategy: Literal["greedy", "cpsat"] = "greedy"
    solver_time_limit: float = 10
    max_consecutive: int = 3
    availability_mode: Literal["day_token", "strict"] = "day_token"
    max_roster_size: int = 200
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            remote_url=os.getenv("TIMETABLE_REMOTE_URL") or None,
            remote_timeout=float(os.getenv("TIMETABLE_REMOTE_TIMEOUT", 30)),
            ping_url=os.getenv("TIMETABLE_PING_URL", "https://www.google.com/generate_204"),
            ping_timeout=float(os.getenv("TIMETABLE_PING_TIMEOUT", 3)),
            strategy=os.getenv("TIMETABLE_STRATEGY", "greedy"),
            solver_time_limit=float(os.getenv("TIMETABLE_SOLVER_TIME_LIMIT", 10)),
            max_consecutive=int(os.getenv("TIMETABLE_MAX_CONSECUTIVE", 3)),
            availability_mode=os.getenv("AVAILABILITY_MODE", "day_token"),
            max_roster_size=int(os.getenv("TIMETABLE_MAX_ROSTER_SIZE", 200)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
