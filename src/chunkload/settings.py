"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Loader runtime settings and explicit config loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .contracts import (
    DEFAULT_ASSET_KIND,
    DEFAULT_TIMEOUT_S,
    DEFAULT_UNIQUE_NAME,
    LoadingPolicy,
)


def _env(name: str, default: str) -> str:
    """Return the stripped value of `name`, or `default` when unset or blank."""
    value = os.getenv(name, "").strip()
    return value or default


def _optional_seconds(raw: str) -> float | None:
    if raw.lower() == "none":
        return None
    return float(raw)


@dataclass(frozen=True, slots=True)
class LoaderSettings:
    """Explicit settings used by the runtime, handle registries and metrics."""

    public_path: str = ""
    filename_template: str = "{id}.css"
    unique_name: str = DEFAULT_UNIQUE_NAME
    asset_kind: str = DEFAULT_ASSET_KIND
    timeout_s: float = DEFAULT_TIMEOUT_S

    handle_backend: str = "inmemory"
    http_timeout_s: float | None = 30.0
    metrics_backend: str = "none"

    @staticmethod
    def from_env() -> "LoaderSettings":
        """Load settings from `CHUNKLOAD_*` environment variables."""
        return LoaderSettings(
            public_path=os.getenv("CHUNKLOAD_PUBLIC_PATH", ""),
            filename_template=_env("CHUNKLOAD_FILENAME_TEMPLATE", "{id}.css"),
            unique_name=_env("CHUNKLOAD_UNIQUE_NAME", DEFAULT_UNIQUE_NAME),
            asset_kind=_env("CHUNKLOAD_ASSET_KIND", DEFAULT_ASSET_KIND),
            timeout_s=float(_env("CHUNKLOAD_TIMEOUT_S", str(DEFAULT_TIMEOUT_S))),
            handle_backend=_env("CHUNKLOAD_HANDLE_BACKEND", "inmemory").lower(),
            http_timeout_s=_optional_seconds(_env("CHUNKLOAD_HTTP_TIMEOUT_S", "30")),
            metrics_backend=_env("CHUNKLOAD_METRICS_BACKEND", "none").lower(),
        )

    def to_policy(self) -> LoadingPolicy:
        """Adapt settings into the policy object shared by cache and coordinator."""
        return LoadingPolicy(
            timeout_s=self.timeout_s,
            unique_name=self.unique_name,
            asset_kind=self.asset_kind,
        )
