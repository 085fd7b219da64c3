"""Runtime settings for the feed service.

Values come from the process environment. A ``.env`` file at the project root
is read first and only fills in variables that are not already set.

- AO3_BASE_URL (default: https://archiveofourown.org)
- AO3_USERNAME / AO3_PASSWORD (optional; both or neither)
- AO3RSS_KEEPALIVE_INTERVAL seconds between keepalive chunks (default: 1.0)
- AO3RSS_REQUEST_TIMEOUT outbound HTTP timeout in seconds (default: 30)
- AO3RSS_USER_AGENT
- AO3RSS_HOST / AO3RSS_PORT for ``runner serve`` (default: 127.0.0.1:3336)
- AO3RSS_LOG_LEVEL (default: INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from app.services.crawl.errors import ConfigError, CredentialConfigError

DEFAULT_BASE_URL = "https://archiveofourown.org"
DEFAULT_USER_AGENT = "ao3rss/0.1 (+https://github.com/kitlith/ao3rss_rs)"


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    username: Optional[str] = None
    password: Optional[str] = None
    keepalive_interval: float = 1.0
    request_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    host: str = "127.0.0.1"
    port: int = 3336
    log_level: str = "INFO"

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def __repr__(self) -> str:
        # Keep the password out of logs and tracebacks
        return (
            f"Settings(base_url={self.base_url!r}, username={self.username!r}, "
            f"keepalive_interval={self.keepalive_interval}, request_timeout={self.request_timeout}, "
            f"host={self.host!r}, port={self.port})"
        )


def _load_env_from_file() -> None:
    """Load environment variables from a .env file at the project root if present.

    Only sets variables that aren't already present in the process environment.
    """
    root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    env_path = os.path.join(root_dir, ".env")
    if not os.path.isfile(env_path):
        return
    with open(env_path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            if "=" not in s:
                continue
            key, val = s.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")
            if key and (key not in os.environ or not os.environ[key]):
                os.environ[key] = val


def _positive_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")
    if val <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return val


def _port(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        val = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")
    if not 0 < val < 65536:
        raise ConfigError(f"{key} out of range: {val}")
    return val


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from ``env`` (defaults to os.environ after reading .env).

    Raises CredentialConfigError when exactly one of AO3_USERNAME/AO3_PASSWORD
    is set; the server must not start with half a credential pair.
    """
    if env is None:
        _load_env_from_file()
        env = os.environ

    username = (env.get("AO3_USERNAME") or "").strip() or None
    password = env.get("AO3_PASSWORD") or None
    if bool(username) != bool(password):
        missing = "AO3_PASSWORD" if username else "AO3_USERNAME"
        raise CredentialConfigError(
            "AO3_USERNAME and AO3_PASSWORD must be set together",
            {"missing": missing},
        )

    base_url = (env.get("AO3_BASE_URL") or DEFAULT_BASE_URL).strip().rstrip("/")
    return Settings(
        base_url=base_url,
        username=username,
        password=password,
        keepalive_interval=_positive_float(env, "AO3RSS_KEEPALIVE_INTERVAL", 1.0),
        request_timeout=_positive_float(env, "AO3RSS_REQUEST_TIMEOUT", 30.0),
        user_agent=(env.get("AO3RSS_USER_AGENT") or DEFAULT_USER_AGENT).strip(),
        host=(env.get("AO3RSS_HOST") or "127.0.0.1").strip(),
        port=_port(env, "AO3RSS_PORT", 3336),
        log_level=(env.get("AO3RSS_LOG_LEVEL") or "INFO").strip().upper(),
    )
