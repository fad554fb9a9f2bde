import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Repo root is the parent of the sosdash/ package
repo_root = Path(__file__).resolve().parent.parent

# Local overrides live in .env next to pyproject.toml; process env wins.
load_dotenv(repo_root / ".env", override=False)


def _get_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        n = int(val)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {val!r}") from None
    if n <= 0:
        raise RuntimeError(f"Environment variable {name} must be positive, got {n}")
    return n


@dataclass(frozen=True)
class Settings:
    app_name: str = "SOSDash"

    api_url: str = "https://floodsupport.org/api/sos"
    # Records per page requested from the API
    page_size: int = 100
    # Per-page timeout; a hang becomes an Error transition instead of a stall
    request_timeout_s: int = 30
    user_agent: str = "sosdash/0.3"

    log_level: str = "INFO"

    # Display knobs
    response_time_limit: int = 15
    top_districts: int = 5

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.getenv("SOSDASH_API_URL", cls.api_url),
            page_size=_get_int("SOSDASH_PAGE_SIZE", cls.page_size),
            request_timeout_s=_get_int("SOSDASH_REQUEST_TIMEOUT_S", cls.request_timeout_s),
            user_agent=os.getenv("SOSDASH_USER_AGENT", cls.user_agent),
            log_level=os.getenv("SOSDASH_LOG_LEVEL", cls.log_level).upper(),
            response_time_limit=_get_int("SOSDASH_RESPONSE_TIME_LIMIT", cls.response_time_limit),
            top_districts=_get_int("SOSDASH_TOP_DISTRICTS", cls.top_districts),
        )


settings = Settings.from_env()
