"""Observability helpers: structured stage logging plus OpenTelemetry metrics."""

from __future__ import annotations

import contextlib
import time
from typing import Dict, Iterator, Mapping, Optional

from opentelemetry import metrics, trace

from . import logging_manager as log_mgr

logger = log_mgr.get_logger().getChild("observability")

_tracer = trace.get_tracer("lexiweave.engine")
_meter = metrics.get_meter("lexiweave.engine")
_histograms: Dict[str, metrics.Histogram] = {}


def _get_histogram(name: str) -> metrics.Histogram:
    histogram = _histograms.get(name)
    if histogram is None:
        histogram = _meter.create_histogram(name)
        _histograms[name] = histogram
    return histogram


def _metric_attributes(attributes: Mapping[str, object]) -> Dict[str, object]:
    # OpenTelemetry only accepts primitive attribute values.
    return {
        key: value
        for key, value in attributes.items()
        if isinstance(value, (str, bool, int, float))
    }


def record_metric(
    name: str,
    value: float,
    attributes: Optional[Mapping[str, object]] = None,
) -> None:
    """Record a numeric observation through the OpenTelemetry meter."""

    attrs = _metric_attributes(attributes or {})
    _get_histogram(name).record(value, attributes=attrs)
    logger.debug(
        "Metric recorded",
        extra={
            "event": "observability.metric_recorded",
            "metric": name,
            "value": value,
            "attributes": attrs,
            "console_suppress": True,
        },
    )


@contextlib.contextmanager
def pipeline_stage(stage: str, attributes: Optional[Mapping[str, object]] = None) -> Iterator[None]:
    """Instrument an engine stage with a span, a duration metric and log lines."""

    attrs = dict(attributes or {})
    log_mgr.ensure_correlation_context(correlation_id=attrs.get("correlation_id"))

    with log_mgr.log_context(stage=stage):
        start = time.perf_counter()
        logger.debug(
            "Stage started",
            extra={
                "event": "engine.stage.start",
                "stage": stage,
                "attributes": attrs,
                "console_suppress": True,
            },
        )
        with _tracer.start_as_current_span(
            f"engine.stage.{stage}", attributes=_metric_attributes(attrs)
        ):
            yield
        duration_ms = (time.perf_counter() - start) * 1000.0
        record_metric("engine.stage.duration", duration_ms, {**attrs, "stage": stage})
        logger.debug(
            "Stage completed",
            extra={
                "event": "engine.stage.complete",
                "stage": stage,
                "duration_ms": round(duration_ms, 2),
                "attributes": attrs,
                "console_suppress": True,
            },
        )


__all__ = ["pipeline_stage", "record_metric"]
