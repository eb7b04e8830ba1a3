"""Application configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Callable, Mapping, TypeVar

from .errors import ConfigurationError

ENV_PREFIX = "HOLDINGS_ENGINE_"

DEFAULT_USER_AGENT = "HoldingsEngine research@example.com"

T = TypeVar("T", int, float)


def _resolve_env_file(candidate: str) -> Path | None:
    """Return the first existing path for ``candidate``, searching upwards."""

    path = Path(candidate)
    if path.is_absolute():
        return path if path.exists() else None

    roots = [Path.cwd(), *Path(__file__).resolve().parents]
    seen: set[Path] = set()
    for root in roots:
        root = root.resolve()
        if root in seen:
            continue
        seen.add(root)
        if (root / candidate).exists():
            return root / candidate
    return None


def _parse_env_file(path: Path) -> dict[str, str]:
    """Parse a dotenv-style file into a mapping."""

    variables: dict[str, str] = {}
    for raw_line in path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        key, sep, value = line.partition("=")
        if not sep:
            continue
        variables[key.strip()] = value.strip().strip('"').strip("'")
    return variables


def _load_profile_env(env: Mapping[str, str]) -> dict[str, str]:
    """Load variables from the explicit env file or the selected profile."""

    explicit_file = env.get(f"{ENV_PREFIX}ENV_FILE")
    profile = env.get(f"{ENV_PREFIX}ENV", "local")
    candidate = explicit_file or f".env.{profile}"

    path = _resolve_env_file(candidate)
    if path is None:
        return {}
    return _parse_env_file(path)


def _number(
    env: Mapping[str, str],
    key: str,
    default: T,
    cast: Callable[[str], T],
    *,
    minimum: T | None = None,
    maximum: T | None = None,
) -> T:
    raw = env.get(ENV_PREFIX + key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{key} must be a number, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise ConfigurationError(f"{ENV_PREFIX}{key} must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise ConfigurationError(f"{ENV_PREFIX}{key} must be <= {maximum}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration."""

    user_agent: str = DEFAULT_USER_AGENT
    archives_url: str = "https://www.sec.gov/Archives/edgar/data"
    submissions_url: str = "https://data.sec.gov/submissions"
    tickers_url: str = "https://www.sec.gov/files/company_tickers.json"
    cik_lookup_url: str = "https://www.sec.gov/Archives/edgar/cik-lookup-data.txt"
    request_timeout: float = 30.0
    max_attempts: int = 3
    retry_backoff: float = 1.0
    min_request_interval: float = 0.12
    max_workers: int = 4
    history_depth: int = 8
    scale_threshold: float = 4.0
    same_period_window_days: int = 30
    deadline: float = 60.0
    form_type: str = "13F-HR"
    database_url: str = "sqlite:///holdings_engine.db"

    @staticmethod
    def load(env: Mapping[str, str] | None = None) -> "Settings":
        """Load settings from environment variables and the profile file."""

        base_env = dict(os.environ if env is None else env)
        file_env = _load_profile_env(base_env)
        # Variables set in the shell take precedence over the file.
        merged = {**file_env, **base_env}

        def text(key: str, default: str) -> str:
            value = merged.get(ENV_PREFIX + key, "").strip()
            return value or default

        defaults = Settings()
        return Settings(
            user_agent=text("USER_AGENT", defaults.user_agent),
            archives_url=text("ARCHIVES_URL", defaults.archives_url).rstrip("/"),
            submissions_url=text("SUBMISSIONS_URL", defaults.submissions_url).rstrip("/"),
            tickers_url=text("TICKERS_URL", defaults.tickers_url),
            cik_lookup_url=text("CIK_LOOKUP_URL", defaults.cik_lookup_url),
            request_timeout=_number(merged, "REQUEST_TIMEOUT", defaults.request_timeout, float, minimum=1.0),
            max_attempts=_number(merged, "MAX_ATTEMPTS", defaults.max_attempts, int, minimum=1, maximum=5),
            retry_backoff=_number(merged, "RETRY_BACKOFF", defaults.retry_backoff, float, minimum=0.0),
            min_request_interval=_number(
                merged, "MIN_REQUEST_INTERVAL", defaults.min_request_interval, float, minimum=0.0
            ),
            max_workers=_number(merged, "MAX_WORKERS", defaults.max_workers, int, minimum=1, maximum=8),
            history_depth=_number(merged, "HISTORY_DEPTH", defaults.history_depth, int, minimum=1),
            scale_threshold=_number(merged, "SCALE_THRESHOLD", defaults.scale_threshold, float, minimum=0.0),
            same_period_window_days=_number(
                merged, "SAME_PERIOD_WINDOW_DAYS", defaults.same_period_window_days, int, minimum=0
            ),
            deadline=_number(merged, "DEADLINE", defaults.deadline, float, minimum=1.0),
            form_type=text("FORM_TYPE", defaults.form_type),
            database_url=text("DATABASE_URL", defaults.database_url),
        )


__all__ = ["Settings", "ENV_PREFIX", "DEFAULT_USER_AGENT"]
