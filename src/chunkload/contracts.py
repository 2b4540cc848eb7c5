"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed policy shared by the load cache and fetch coordinator.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_TIMEOUT_S = 120.0
DEFAULT_UNIQUE_NAME = "webpack"
DEFAULT_ASSET_KIND = "css"


@dataclass(frozen=True, slots=True)
class LoadingPolicy:
    """
    Loading semantics for one runtime.

    Attributes:
        timeout_s: Watchdog window for one fetch attempt.
        unique_name: Namespace used in handle tags (`<unique_name>:chunk-<id>`).
        asset_kind: Asset label used in diagnostics (`css`, `js`, ...).
    """

    timeout_s: float = DEFAULT_TIMEOUT_S
    unique_name: str = DEFAULT_UNIQUE_NAME
    asset_kind: str = DEFAULT_ASSET_KIND

    def __post_init__(self) -> None:
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        if not self.unique_name.strip():
            raise ValueError("unique_name must be non-empty")
