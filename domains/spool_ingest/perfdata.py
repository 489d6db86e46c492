"""
Performance-data decoder.

Monitoring plugins report measurements as repeated
``label=value[unit];warn;crit;min;max`` segments. The scanner below walks the
string once, left to right, and reproduces a left-most greedy search:

- label: one or more characters other than ``=``
- value: ``U`` or one or more of ``0-9 . , -``
- unit: letters, ``/`` or ``%``
- warn, crit: ``0-9 . , - : ~ @`` (each preceded by an optional ``;``)
- min, max: ``0-9 . , -`` (each preceded by an optional ``;``)
- trailing whitespace

A segment whose value is not a finite number is skipped. Thresholds and
bounds that are not finite numbers are dropped from the metric.
"""

import math
from typing import Dict, Iterator, List, Optional

from loguru import logger

from metrics_sender.models.schemas import MeasurementPoint, PerfMetric

from domains.spool_ingest.errors import MetricValueUnparseable

UNKNOWN_VALUE = "U"
METRIC_MEASUREMENT = "metric"

_DIGITS = frozenset("0123456789")
_VALUE_CHARS = _DIGITS | frozenset(".,-")
_THRESHOLD_CHARS = _VALUE_CHARS | frozenset(":~@")
_BOUND_CHARS = _VALUE_CHARS
_UNIT_SYMBOLS = frozenset("/%")
_WHITESPACE = frozenset(" \t\n\f\r")


def _run(text: str, pos: int, allowed: frozenset) -> int:
    """Return the end of the run of ``allowed`` characters starting at ``pos``."""
    end = pos
    while end < len(text) and text[end] in allowed:
        end += 1
    return end


def _unit_end(text: str, pos: int) -> int:
    end = pos
    while end < len(text) and (text[end].isalpha() or text[end] in _UNIT_SYMBOLS):
        end += 1
    return end


def _skip_semicolon(text: str, pos: int) -> int:
    if pos < len(text) and text[pos] == ";":
        return pos + 1
    return pos


def parse_float(raw: Optional[str]) -> Optional[float]:
    """Parse ``raw`` as a finite float, returning None when it is not one."""
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _iter_segments(perfdata: str) -> Iterator[List[str]]:
    """
    Yield raw segments as ``[label, value, unit, warn, crit, min, max]``.

    Optional parts that are absent are yielded as empty strings.
    """
    pos = 0
    length = len(perfdata)

    while pos < length:
        eq = perfdata.find("=", pos)
        if eq == -1:
            return
        if eq == pos:
            # a label needs at least one character
            pos += 1
            continue

        label = perfdata[pos:eq]
        start = eq + 1
        if start < length and perfdata[start] == UNKNOWN_VALUE:
            end = start + 1
        else:
            end = _run(perfdata, start, _VALUE_CHARS)
        if end == start:
            # no value: nothing between here and this '=' can start a segment
            pos = eq + 1
            continue
        value = perfdata[start:end]

        unit_end = _unit_end(perfdata, end)
        unit = perfdata[end:unit_end]
        pos = _skip_semicolon(perfdata, unit_end)

        extras = []
        for allowed in (_THRESHOLD_CHARS, _THRESHOLD_CHARS, _BOUND_CHARS, _BOUND_CHARS):
            end = _run(perfdata, pos, allowed)
            extras.append(perfdata[pos:end])
            pos = _skip_semicolon(perfdata, end)

        pos = _run(perfdata, pos, _WHITESPACE)
        yield [label, value, unit, *extras]


def to_metric(segment: List[str]) -> PerfMetric:
    """
    Build a PerfMetric from a raw segment.

    Raises:
        MetricValueUnparseable: If the value is ``U`` or not a finite number
    """
    label, raw_value, unit, warn, crit, minimum, maximum = segment

    value = parse_float(raw_value) if raw_value != UNKNOWN_VALUE else None
    if value is None:
        raise MetricValueUnparseable(f"Could not parse value {raw_value!r} of {label!r}")

    return PerfMetric(
        label=label,
        value=value,
        unit=unit or None,
        warn=parse_float(warn),
        crit=parse_float(crit),
        min=parse_float(minimum),
        max=parse_float(maximum),
    )


def iter_perf_metrics(perfdata: str) -> Iterator[PerfMetric]:
    """Decode ``perfdata``, silently skipping metrics without a usable value."""
    for segment in _iter_segments(perfdata):
        try:
            yield to_metric(segment)
        except MetricValueUnparseable as e:
            logger.debug(f"Skipping metric: {e}")


def metric_to_point(metric: PerfMetric, tags: Dict[str, str], timestamp: int) -> MeasurementPoint:
    """Turn one metric into a ``metric`` point carrying ``tags``."""
    point_tags = dict(tags)
    point_tags["label"] = metric.label
    if metric.unit:
        point_tags["uom"] = metric.unit

    fields: Dict[str, float] = {"value": metric.value}
    for name in ("warn", "crit", "min", "max"):
        bound = getattr(metric, name)
        if bound is not None:
            fields[name] = bound

    return MeasurementPoint(
        name=METRIC_MEASUREMENT,
        tags=point_tags,
        fields=fields,
        timestamp=timestamp,
    )


def decode_perfdata(perfdata: str, tags: Dict[str, str], timestamp: int) -> List[MeasurementPoint]:
    """
    Decode a performance-data string into metric points.

    Args:
        perfdata: Raw performance-data string (may be empty)
        tags: Tags attached to every point
        timestamp: Epoch seconds of all points

    Returns:
        One point per metric with a finite value, in input order
    """
    return [metric_to_point(metric, tags, timestamp) for metric in iter_perf_metrics(perfdata)]
