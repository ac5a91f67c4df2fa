"""Runtime configuration, read from environment variables."""

import os
from dataclasses import dataclass, field
from typing import Optional, Self

ENV_PREFIX = "CHECKERS_"


def _env(name: str, default: str) -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_bool(name: str, default: bool) -> bool:
    return _env(name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    # Room expiry
    room_ttl_seconds: float = 2 * 60 * 60
    idle_room_seconds: float = 5 * 60
    sweep_interval_seconds: float = 60

    # Room codes
    code_attempts: int = 100
    strict_codes: bool = True

    # When True, the sender's computed game state is stored as-is (no server-side move validation)
    trust_client_state: bool = False

    client_url: str = "http://localhost:3000"
    database_url: Optional[str] = None
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    log_level: str = "INFO"
    log_format: str = "simple"

    @classmethod
    def from_env(cls) -> Self:
        database_url = _env("DATABASE_URL", "") or None
        return cls(
            room_ttl_seconds=float(_env("ROOM_TTL_SECONDS", "7200")),
            idle_room_seconds=float(_env("IDLE_ROOM_SECONDS", "300")),
            sweep_interval_seconds=float(_env("SWEEP_INTERVAL_SECONDS", "60")),
            code_attempts=int(_env("CODE_ATTEMPTS", "100")),
            strict_codes=_env_bool("STRICT_CODES", True),
            trust_client_state=_env_bool("TRUST_CLIENT_STATE", False),
            client_url=_env("CLIENT_URL", "http://localhost:3000"),
            database_url=database_url,
            allowed_origins=_env("ALLOWED_ORIGINS", "*").split(","),
            log_level=_env("LOG_LEVEL", "INFO"),
            log_format=_env("LOG_FORMAT", "simple"),
        )
