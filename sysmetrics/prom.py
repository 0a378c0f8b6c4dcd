"""Gauges and a collector registry rendering the Prometheus text format."""

from __future__ import annotations

import math
import re
import threading
from collections.abc import Iterable, Sequence
from typing import Optional

_METRIC_NAME = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_NAME = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")

LabelValues = Optional[Sequence[str]]


class MetricError(Exception):
    """A metric was misused or could not be registered."""


def _format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label_value(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


class Gauge:
    """A Prometheus gauge holding one sample per set of label values."""

    kind = "gauge"

    def __init__(self, name: str, help: str, label_keys: Iterable[str] = ()) -> None:
        self.name = name
        self.help = help
        self.label_keys = tuple(label_keys)
        for key in self.label_keys:
            if not _LABEL_NAME.fullmatch(key):
                raise MetricError(f"invalid label name: {key!r}")
        self._lock = threading.Lock()
        self._samples: dict[tuple[str, ...], float] = {}
        if not self.label_keys:
            self._samples[()] = 0.0

    def _key(self, label_values: LabelValues) -> tuple[str, ...]:
        values = tuple(label_values) if label_values is not None else ()
        if len(values) != len(self.label_keys):
            raise MetricError(
                f"{self.name}: expected {len(self.label_keys)} label values, got {len(values)}"
            )
        return values

    def _update(self, label_values: LabelValues, fn) -> None:
        key = self._key(label_values)
        with self._lock:
            self._samples[key] = float(fn(self._samples.get(key, 0.0)))

    def inc(self, label_values: LabelValues = None) -> None:
        """Increase the sample by 1."""
        self._update(label_values, lambda current: current + 1.0)

    def dec(self, label_values: LabelValues = None) -> None:
        """Decrease the sample by 1."""
        self._update(label_values, lambda current: current - 1.0)

    def add(self, value: float, label_values: LabelValues = None) -> None:
        """Add *value* to the sample."""
        self._update(label_values, lambda current: current + value)

    def sub(self, value: float, label_values: LabelValues = None) -> None:
        """Subtract *value* from the sample."""
        self._update(label_values, lambda current: current - value)

    def set(self, value: float, label_values: LabelValues = None) -> None:
        """Set the sample to *value*."""
        self._update(label_values, lambda _current: value)

    def value(self, label_values: LabelValues = None) -> float:
        """Current value of the sample, 0 if it was never touched."""
        key = self._key(label_values)
        with self._lock:
            return self._samples.get(key, 0.0)

    def samples(self) -> list[tuple[tuple[str, ...], float]]:
        """Snapshot of all samples in the order they were created."""
        with self._lock:
            return list(self._samples.items())

    def render(self) -> str:
        """Render the gauge in the text exposition format."""
        lines = [
            f"# HELP {self.name} {_escape_help(self.help)}",
            f"# TYPE {self.name} {self.kind}",
        ]
        for values, sample in self.samples():
            if values:
                labels = ",".join(
                    f'{key}="{_escape_label_value(val)}"'
                    for key, val in zip(self.label_keys, values)
                )
                lines.append(f"{self.name}{{{labels}}} {_format_value(sample)}")
            else:
                lines.append(f"{self.name} {_format_value(sample)}")
        return "\n".join(lines) + "\n"


class CollectorRegistry:
    """Holds registered metrics and renders them for scraping."""

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._metrics: dict[str, Gauge] = {}

    def validate_metric_name(self, metric_name: str) -> None:
        """Raise MetricError unless *metric_name* is a valid metric name."""
        if not metric_name or not _METRIC_NAME.fullmatch(metric_name):
            raise MetricError(f"invalid metric name: {metric_name!r}")

    def register(self, metric: Gauge) -> Gauge:
        """Register *metric* and return it; a name may be registered once."""
        self.validate_metric_name(metric.name)
        with self._lock:
            if metric.name in self._metrics:
                raise MetricError(f"metric already registered: {metric.name}")
            self._metrics[metric.name] = metric
        return metric

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._metrics

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)

    def bridge(self) -> str:
        """All registered metrics in the text exposition format."""
        with self._lock:
            metrics = list(self._metrics.values())
        return "".join(metric.render() + "\n" for metric in metrics)