"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics adapters for chunk loading observability.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

METRIC_REQUESTS_TOTAL = "chunk_load_requests_total"
METRIC_OUTCOMES_TOTAL = "chunk_load_outcomes_total"
METRIC_HANDLES_TOTAL = "chunk_handles_total"


class LoaderMetrics(Protocol):
    """Minimal metrics interface for load cache and coordinator instrumentation."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpLoaderMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        return None


@dataclass(slots=True)
class InMemoryLoaderMetrics:
    """Metrics sink that keeps counters in process memory for tests and debugging."""

    counters: dict[tuple[str, tuple[tuple[str, str], ...]], int] = field(
        default_factory=dict
    )

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        key = (name, tuple(sorted((tags or {}).items())))
        self.counters[key] = self.counters.get(key, 0) + int(value)

    def get(self, name: str, **tags: str) -> int:
        """Return the counter value for one name and exact tag set."""
        return self.counters.get((name, tuple(sorted(tags.items()))), 0)

    def total(self, name: str) -> int:
        """Return the sum of one counter across all tag sets."""
        return sum(v for (metric, _), v in self.counters.items() if metric == name)


class PrometheusLoaderMetrics:
    """
    Prometheus-backed loader metrics adapter.

    Counters are declared on first use with the label set of that first call;
    later calls for the same name must use the same label names.
    Requires `prometheus_client` package.
    """

    def __init__(self, *, namespace: str = "chunkload", registry=None) -> None:
        try:
            from prometheus_client import REGISTRY, Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusLoaderMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._counter_cls = Counter
        self._namespace = namespace
        self._registry = registry if registry is not None else REGISTRY
        self._counters: dict[str, tuple[tuple[str, ...], object]] = {}

    def _counter(self, name: str, label_names: tuple[str, ...]):
        declared = self._counters.get(name)
        if declared is None:
            counter = self._counter_cls(
                name,
                f"Chunk loader counter {name}",
                labelnames=label_names,
                namespace=self._namespace,
                registry=self._registry,
            )
            self._counters[name] = (label_names, counter)
            return counter
        known_labels, counter = declared
        if known_labels != label_names:
            raise ValueError(
                f"Metric {name} was declared with labels {known_labels}, got {label_names}"
            )
        return counter

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        labels = dict(tags or {})
        counter = self._counter(name, tuple(sorted(labels)))
        if labels:
            counter = counter.labels(**{key: str(val) for key, val in labels.items()})
        counter.inc(value)


def create_loader_metrics(backend: str | LoaderMetrics | None = None) -> LoaderMetrics:
    """Resolve a metrics sink from id/instance/default."""
    if backend is None:
        return NoOpLoaderMetrics()
    if not isinstance(backend, str):
        return backend

    key = backend.strip().lower()
    if key in ("", "none", "noop"):
        return NoOpLoaderMetrics()
    if key in ("mem", "memory", "inmemory", "in_memory"):
        return InMemoryLoaderMetrics()
    if key == "prometheus":
        return PrometheusLoaderMetrics()
    raise ValueError(f"Unknown metrics backend: {backend}")
