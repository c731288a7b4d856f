"""Shared runtime settings for local-first storage and the assistant provider."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class StorageSettings:
    """Filesystem and SQLite locations used by local-first deployments."""

    backend: str
    data_dir: Path
    sqlite_path: Path

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> "StorageSettings":
        source = os.environ if env is None else env
        data_dir = Path(source.get("STATUS_HUB_DATA_DIR", "./data"))
        sqlite_path = Path(
            source.get("STATUS_HUB_SQLITE_PATH", str(data_dir / "status_hub.sqlite"))
        )
        backend = (source.get("STATUS_HUB_STORE") or "in_memory").strip().lower()
        return cls(backend=backend, data_dir=data_dir, sqlite_path=sqlite_path)

    def ensure_directories(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class AssistantSettings:
    """Text-generation provider selection and per-role model names."""

    provider: str
    api_key: str | None
    admin_model: str
    client_model: str
    timeout_s: float
    context_budget: int

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> "AssistantSettings":
        source = os.environ if env is None else env
        api_key = (source.get("STATUS_HUB_GEMINI_API_KEY") or "").strip() or None
        return cls(
            provider=(source.get("STATUS_HUB_LLM_PROVIDER") or "local").strip().lower(),
            api_key=api_key,
            admin_model=source.get("STATUS_HUB_GEMINI_ADMIN_MODEL", "gemini-2.5-pro"),
            client_model=source.get("STATUS_HUB_GEMINI_CLIENT_MODEL", "gemini-2.5-flash"),
            timeout_s=float(source.get("STATUS_HUB_LLM_TIMEOUT_S", "30")),
            context_budget=int(source.get("STATUS_HUB_CONTEXT_BUDGET", "12000")),
        )


@dataclass(frozen=True)
class WorkflowSettings:
    strict_transitions: bool

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> "WorkflowSettings":
        source = os.environ if env is None else env
        return cls(strict_transitions=_flag(source.get("STATUS_HUB_STRICT_TRANSITIONS")))


def get_storage_settings(env: dict[str, str] | None = None) -> StorageSettings:
    """Build storage settings from the environment and create directories for SQLite."""

    settings = StorageSettings.from_env(env)
    if settings.backend == "sqlite":
        settings.ensure_directories()
    return settings
