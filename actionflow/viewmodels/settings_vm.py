from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from ..domain.entities import DEFAULT_HISTORY_LIMIT
from ..utils.logging import env_truthy

DEFAULT_API_BASE_URL = "http://127.0.0.1:8787"
DEFAULT_TIMEOUT_S = 15.0


@dataclass
class SettingsConfig:
    """Typed runtime settings for the task client."""

    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout_s: float = DEFAULT_TIMEOUT_S
    history_limit: int = DEFAULT_HISTORY_LIMIT
    task_id: Optional[str] = None
    use_screen_capture: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SettingsConfig":
        """Build settings from ``API_BASE_URL``, ``API_TIMEOUT_MS`` and ``TASK_ID``.

        ``ACTIONFLOW_HEADLESS`` set to a truthy value disables native capture.
        """
        env = os.environ if environ is None else environ
        cfg = cls()
        base_url = (env.get("API_BASE_URL") or "").strip()
        if base_url:
            cfg = replace(cfg, api_base_url=base_url)
        timeout_ms = (env.get("API_TIMEOUT_MS") or "").strip()
        if timeout_ms:
            cfg = replace(
                cfg,
                request_timeout_s=_coerce_positive_float("API_TIMEOUT_MS", timeout_ms) / 1000.0,
            )
        task_id = (env.get("TASK_ID") or "").strip()
        if task_id:
            cfg = replace(cfg, task_id=task_id)
        if env_truthy(env.get("ACTIONFLOW_HEADLESS")):
            cfg = replace(cfg, use_screen_capture=False)
        return cfg


class SettingsVM:
    """Keeps client settings state and validation, no I/O here."""

    def __init__(self, *, config: Optional[SettingsConfig] = None) -> None:
        self.config = config or SettingsConfig()

    def is_valid(self) -> bool:
        url = self.config.api_base_url
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            return False
        if self.config.request_timeout_s <= 0:
            return False
        return self.config.history_limit >= 1


def _coerce_positive_float(name: str, value: Any) -> float:
    try:
        coerced = float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number.") from exc
    if not coerced > 0:
        raise ValueError(f"{name} must be positive.")
    return coerced
