"""Metrics for pipeline operations, logged to stdout and optionally mirrored to StatsD."""

from __future__ import annotations

import logging
import secrets
from typing import Any

from dealflow.config import Settings, settings

try:  # pragma: no cover - optional dependency
    from statsd import StatsClient
except Exception:  # pragma: no cover - optional dependency guard
    StatsClient = None  # type: ignore[assignment]

logger = logging.getLogger("dealflow.metrics")

# StatsD has no tags; these are folded into the bucket name instead.
BUCKET_TAGS = ("operation",)


class MetricsReporter:
    """Emit `pipeline.*` and `introduction.*` metrics under the configured namespace."""

    def __init__(self, config: Settings = settings, *, client: Any | None = None) -> None:
        self._disabled = config.metrics_disable
        self._namespace = config.metrics_namespace or "dealflow"
        self._sample_rate = max(0.0, min(config.metrics_sample_rate, 1.0))
        self._statsd = client
        if client is None and (config.metrics_backend or "").lower() == "statsd":
            self._statsd = self._connect(config)

    @property
    def backend(self) -> str:
        return "statsd" if self._statsd is not None else "stdout"

    def timing(self, metric: str, value_ms: float, *, tags: dict[str, Any] | None = None) -> None:
        self._emit("timing", metric, value_ms, tags=tags)

    def gauge(self, metric: str, value: float, *, tags: dict[str, Any] | None = None) -> None:
        self._emit("gauge", metric, value, tags=tags)

    def increment(
        self, metric: str, value: float = 1.0, *, tags: dict[str, Any] | None = None
    ) -> None:
        self._emit("counter", metric, value, tags=tags)

    def _connect(self, config: Settings) -> Any | None:
        if self._disabled:
            return None
        if StatsClient is None:
            logger.warning("statsd backend requested but statsd package is not installed.")
            return None
        return StatsClient(
            host=config.metrics_statsd_host, port=config.metrics_statsd_port, prefix=""
        )

    def _emit(
        self, metric_type: str, metric: str, value: float, *, tags: dict[str, Any] | None
    ) -> None:
        if self._disabled:
            return
        tags = tags or {}
        # Gauges report current state and are never sampled.
        sample_rate = 1.0 if metric_type == "gauge" else self._sample_rate
        if sample_rate < 1.0 and secrets.randbelow(1_000_000) / 1_000_000 > sample_rate:
            return
        name = f"{self._namespace}.{metric}"
        payload: dict[str, Any] = {
            "metric": name,
            "value": round(float(value), 4),
            "type": metric_type,
            "tags": tags,
        }
        if sample_rate < 1.0:
            payload["sample_rate"] = round(sample_rate, 4)
        logger.info("dealflow.metric", extra={"metrics": payload})
        if self._statsd is not None:
            self._send(metric_type, self._bucket(name, tags), value, sample_rate)

    def _bucket(self, name: str, tags: dict[str, Any]) -> str:
        suffix = [str(tags[key]) for key in BUCKET_TAGS if tags.get(key)]
        return ".".join([name, *suffix])

    def _send(self, metric_type: str, bucket: str, value: float, sample_rate: float) -> None:
        try:
            if metric_type == "timing":
                self._statsd.timing(bucket, value, rate=sample_rate)
            elif metric_type == "gauge":
                self._statsd.gauge(bucket, value)
            else:
                self._statsd.incr(bucket, value, rate=sample_rate)
        except OSError as exc:
            logger.warning(
                "metrics.backend_error",
                extra={"metric": bucket, "backend": self.backend, "error": type(exc).__name__},
            )


metrics = MetricsReporter()
