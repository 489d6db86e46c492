"""
Line parser for spool files.

A line is a list of ``key::value`` tokens joined by ``!**!*!**!``. The key is
everything before the first ``::``; the value is everything after it.
"""

from typing import Dict, Iterable

from metrics_sender.models.schemas import Batch

from domains.spool_ingest.encoder import encode_fields
from domains.spool_ingest.errors import SpoolIngestError, MalformedToken

TOKEN_DELIMITER = "!**!*!**!"
KEY_VALUE_SEPARATOR = "::"


def split_token(token: str) -> tuple[str, str]:
    """
    Split one token into its key and value.

    Args:
        token: Raw token text

    Returns:
        Tuple of (key, value)

    Raises:
        MalformedToken: If the token has no separator or an empty key
    """
    key, separator, value = token.partition(KEY_VALUE_SEPARATOR)
    if not separator or not key:
        raise MalformedToken(token)
    return key, value


def parse_line(line: str) -> Dict[str, str]:
    """Parse one line into its field set. Later duplicate keys win."""
    fields: Dict[str, str] = {}
    for token in line.split(TOKEN_DELIMITER):
        key, value = split_token(token)
        fields[key] = value
    return fields


def parse_lines(lines: Iterable[str]) -> Batch:
    """
    Parse and encode every line of a spool file.

    Stops at the first bad line; the error message gets the line number
    prepended so the operator can find it in the file.

    Args:
        lines: Lines without their terminators

    Returns:
        All points of all lines, in line order
    """
    points: Batch = []
    for number, line in enumerate(lines, 1):
        try:
            points.extend(encode_fields(parse_line(line)))
        except SpoolIngestError as e:
            e.args = (f"line {number}: {e}",)
            raise
    return points
