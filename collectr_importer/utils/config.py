"""Importer configuration, read once from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

ANON_USERNAME = "00000000-0000-0000-0000-000000000000"
DEFAULT_USER_AGENT = "CardLobby Collectr Importer"
DEFAULT_UNGRADED_GRADE_ID = "52"

ENV_FILES = (".env.scripts", ".env", ".env.local")

_FALSE_VALUES = ("0", "false", "no", "off")


def load_env_files(base_dir: Optional[str] = None) -> None:
    """Load .env files from the working directory (later files do not override)."""
    root = Path(base_dir or os.getcwd())
    for name in ENV_FILES:
        path = root / name
        if path.exists():
            load_dotenv(dotenv_path=path)
    load_dotenv()


def _first(env: Mapping[str, str], *keys: str) -> Optional[str]:
    for key in keys:
        value = env.get(key)
        if value:
            return value
    return None


def _flag(env: Mapping[str, str], key: str, default: bool = True) -> bool:
    raw = (env.get(key) or "").strip().lower()
    if not raw:
        return default
    return raw not in _FALSE_VALUES


def _clamped_int(raw: Optional[str], default: int, low: int, high: int) -> int:
    try:
        value = int(float(raw)) if raw not in (None, "") else default
    except (TypeError, ValueError):
        value = default
    return min(max(value, low), high)


@dataclass(frozen=True)
class ImporterConfig:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # request header overrides
    user_agent: str = DEFAULT_USER_AGENT
    accept: Optional[str] = None
    accept_language: Optional[str] = None
    authorization: Optional[str] = None
    origin: Optional[str] = None
    referer: Optional[str] = None

    # showcase API
    username: Optional[str] = None
    filters: Optional[str] = None
    api_limit: int = 30
    api_max_pages: int = 200

    # strategy switches
    use_api: bool = True
    use_browser: bool = True
    scroll: bool = True
    headless: bool = True

    debug: bool = False
    debug_limit: int = 3

    ungraded_grade_id: str = DEFAULT_UNGRADED_GRADE_ID

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ImporterConfig":
        if env is None:
            load_env_files()
            env = os.environ

        try:
            debug_limit = int(env.get("COLLECTR_DEBUG_LIMIT") or 3)
        except ValueError:
            debug_limit = 3

        return cls(
            supabase_url=_first(env, "SUPABASE_URL", "VITE_SUPABASE_URL"),
            supabase_key=_first(
                env,
                "SUPABASE_SERVICE_ROLE_KEY",
                "SUPABASE_SERVICE_KEY",
                "SUPABASE_ANON_KEY",
                "VITE_SUPABASE_ANON_KEY",
            ),
            user_agent=env.get("COLLECTR_USER_AGENT") or DEFAULT_USER_AGENT,
            accept=env.get("COLLECTR_ACCEPT") or None,
            accept_language=env.get("COLLECTR_ACCEPT_LANGUAGE") or None,
            authorization=_first(env, "COLLECTR_AUTH_TOKEN", "COLLECTR_AUTHORIZATION"),
            origin=env.get("COLLECTR_ORIGIN") or None,
            referer=env.get("COLLECTR_REFERER") or None,
            username=_first(env, "COLLECTR_USERNAME", "COLLECTR_ANON_USERNAME"),
            # an empty COLLECTR_FILTERS is meaningful, so only None means unset
            filters=env.get("COLLECTR_FILTERS"),
            api_limit=_clamped_int(env.get("COLLECTR_API_LIMIT"), 30, 10, 30),
            api_max_pages=_clamped_int(env.get("COLLECTR_API_MAX_PAGES"), 200, 1, 500),
            use_api=_flag(env, "COLLECTR_USE_API"),
            use_browser=_flag(env, "COLLECTR_USE_BROWSER"),
            scroll=_flag(env, "COLLECTR_SCROLL"),
            headless=_flag(env, "COLLECTR_HEADLESS"),
            debug=(env.get("COLLECTR_DEBUG") or "") == "1",
            debug_limit=debug_limit,
            ungraded_grade_id=(
                env.get("COLLECTR_UNGRADED_GRADE_ID") or DEFAULT_UNGRADED_GRADE_ID
            ),
        )

    @property
    def api_username(self) -> str:
        return self.username or ANON_USERNAME

    def api_headers(self) -> dict[str, str]:
        """Headers for direct showcase API and HTML requests."""
        headers = {
            "user-agent": self.user_agent,
            "accept": self.accept or "application/json",
        }
        if self.accept_language:
            headers["accept-language"] = self.accept_language
        if self.authorization:
            headers["authorization"] = self.authorization
        if self.origin:
            headers["origin"] = self.origin
        if self.referer:
            headers["referer"] = self.referer
        return headers

    def page_headers(self) -> dict[str, str]:
        """Headers replayed from inside the browser page (no UA/origin overrides)."""
        headers = {}
        if self.accept:
            headers["accept"] = self.accept
        if self.accept_language:
            headers["accept-language"] = self.accept_language
        if self.authorization:
            headers["authorization"] = self.authorization
        return headers

    def collection_filters(self, collection_id: Optional[str]) -> Optional[str]:
        if self.filters is not None:
            return self.filters
        return "" if collection_id else None
