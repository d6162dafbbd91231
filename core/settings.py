import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_SELECT_TIMEOUT = 60.0


@dataclass(frozen=True)
class Settings:
    discord_token: str
    guild_id: Optional[int] = None
    select_timeout: float = DEFAULT_SELECT_TIMEOUT
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read bot settings from the environment, aborting on anything unusable."""

    env = os.environ if environ is None else environ

    token = (env.get("DISCORD_TOKEN") or "").strip()
    if not token:
        raise SystemExit("Missing required environment variable DISCORD_TOKEN.")

    guild_raw = (env.get("DISCORD_GUILD_ID") or env.get("GUILD_ID") or "").strip()
    guild_id: Optional[int] = None
    if guild_raw:
        if not guild_raw.isdigit():
            raise SystemExit(f"DISCORD_GUILD_ID must be an integer, got {guild_raw!r}.")
        guild_id = int(guild_raw)

    timeout_raw = (env.get("SELECT_TIMEOUT_SECONDS") or "").strip()
    select_timeout = DEFAULT_SELECT_TIMEOUT
    if timeout_raw:
        try:
            select_timeout = float(timeout_raw)
        except ValueError:
            raise SystemExit(f"SELECT_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}.")
        if not math.isfinite(select_timeout) or select_timeout <= 0:
            raise SystemExit("SELECT_TIMEOUT_SECONDS must be a positive finite number.")

    log_level = (env.get("LOG_LEVEL") or "INFO").strip().upper()

    return Settings(
        discord_token=token,
        guild_id=guild_id,
        select_timeout=select_timeout,
        log_level=log_level,
    )
