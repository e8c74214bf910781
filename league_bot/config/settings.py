# league_bot/config/settings.py
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _require(env: dict[str, str], key: str) -> str:
    v = env.get(key)
    if v is None or not v.strip():
        raise RuntimeError(f"Missing required environment variable: {key}")
    return v.strip()


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _optional_int(env: dict[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    return _to_int(raw, key) if raw else default


def _parse_int_list(raw: str | None, key_name: str) -> list[int]:
    """
    Parses comma/space/newline separated ints.
    Accepts:
      "951258732"
      "951258732,123"
      "951258732 123"
      "[951258732, 123]"  (brackets ignored)
    """
    if not raw:
        return []

    cleaned = raw.strip().strip("[](){}").strip()
    if not cleaned:
        return []

    out: list[int] = []
    for p in re.split(r"[,\s]+", cleaned):
        p2 = p.strip().strip("'\"")
        if p2:
            out.append(_to_int(p2, key_name))
    return out


@dataclass(frozen=True, slots=True)
class Settings:
    # --- bot (required only when running the Telegram front end) ---
    bot_token: str = ""

    # --- storage ---
    database_url: str = "sqlite+aiosqlite:///./leagues.db"

    # --- security / admin ---
    root_admin_ids: tuple[int, ...] = ()

    # --- telegram targets ---
    group_id: Optional[int] = None

    # --- leagues ---
    league_utc_offset_minutes: int = 330  # IST, fixed offset (no DST)
    default_grade: int = 4
    rollover_concurrency: int = 4

    # --- environment ---
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @classmethod
    def load(cls, *, require_bot_token: bool = True) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast for required or malformed fields.
        """
        load_dotenv()
        env = os.environ

        bot_token = _require(env, "BOT_TOKEN") if require_bot_token else (env.get("BOT_TOKEN") or "").strip()

        database_url = (env.get("DATABASE_URL") or "sqlite+aiosqlite:///./leagues.db").strip()

        root_admin_ids = tuple(_parse_int_list(env.get("ROOT_ADMIN_IDS"), "ROOT_ADMIN_IDS"))

        group_id_raw = (env.get("GROUP_ID") or "").strip()
        group_id = _to_int(group_id_raw, "GROUP_ID") if group_id_raw else None

        offset = _optional_int(env, "LEAGUE_UTC_OFFSET_MINUTES", 330)
        if not -12 * 60 <= offset <= 14 * 60:
            raise RuntimeError(f"LEAGUE_UTC_OFFSET_MINUTES out of range: {offset}")

        default_grade = _optional_int(env, "DEFAULT_GRADE", 4)

        concurrency = _optional_int(env, "ROLLOVER_CONCURRENCY", 4)
        if concurrency < 1:
            raise RuntimeError("ROLLOVER_CONCURRENCY must be >= 1")

        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        return cls(
            bot_token=bot_token,
            database_url=database_url,
            root_admin_ids=root_admin_ids,
            group_id=group_id,
            league_utc_offset_minutes=offset,
            default_grade=default_grade,
            rollover_concurrency=concurrency,
            environment=environment,
        )
