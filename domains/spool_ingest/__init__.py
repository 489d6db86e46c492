"""
Spool Ingestion Domain

Drains a spool directory of monitoring check results into InfluxDB:
- line_parser.py - ``key::value`` tokens joined by ``!**!*!**!``
- perfdata.py - ``label=value[unit];warn;crit;min;max`` decoding
- encoder.py - metric and state points per line
- processor.py - read, dispatch and delete one file
- scheduler.py - bounded, timeout-aware scan cycles
"""

__all__ = [
    "encoder",
    "errors",
    "inventory",
    "line_parser",
    "perfdata",
    "processor",
    "scheduler",
    "watcher",
]
