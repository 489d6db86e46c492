"""
Point encoder.

Turns the field set of one line into measurement points: one ``metric`` point
per performance-data label followed by a single ``state`` point. Every field
other than ``state``, ``timestamp`` and ``perfdata`` becomes a tag on all of
them.
"""

import re
from typing import Dict, Optional

from metrics_sender.models.schemas import Batch, MeasurementPoint

from domains.spool_ingest.errors import InvalidState, InvalidTimestamp
from domains.spool_ingest.perfdata import decode_perfdata

STATE_MEASUREMENT = "state"

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


def parse_int(raw: Optional[str]) -> Optional[int]:
    """Parse a plain decimal integer (optional sign, ASCII digits only)."""
    if raw is None or not _INTEGER.fullmatch(raw):
        return None
    return int(raw)


def state_to_point(state: int, tags: Dict[str, str], timestamp: int) -> MeasurementPoint:
    """Build the ``state`` point of a line."""
    return MeasurementPoint(
        name=STATE_MEASUREMENT,
        tags=dict(tags),
        fields={"value": state},
        timestamp=timestamp,
    )


def encode_fields(fields: Dict[str, str]) -> Batch:
    """
    Encode one line's fields into points.

    Args:
        fields: Field set from the line parser (left untouched)

    Returns:
        Metric points in performance-data order, then the state point

    Raises:
        InvalidState: If ``state`` is missing or not an integer
        InvalidTimestamp: If ``timestamp`` is missing or not an integer
    """
    tags = dict(fields)

    raw_state = tags.pop("state", None)
    state = parse_int(raw_state)
    if state is None or not _INT64_MIN <= state <= _INT64_MAX:
        raise InvalidState(f"Could not parse state {raw_state!r} into integer")

    perfdata = tags.pop("perfdata", "")

    raw_timestamp = tags.pop("timestamp", None)
    timestamp = parse_int(raw_timestamp)
    if timestamp is None or not _INT64_MIN <= timestamp <= _INT64_MAX:
        raise InvalidTimestamp(f"Could not parse timestamp {raw_timestamp!r} into integer")

    points = decode_perfdata(perfdata, tags, timestamp)
    points.append(state_to_point(state, tags, timestamp))
    return points
