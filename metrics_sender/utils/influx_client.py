"""
InfluxDB client wrapper.

Provides:
- Connection management (one client per scan cycle)
- Conversion of measurement points to line-protocol points
- Atomic batch writes
"""

from typing import Iterable, List, Optional

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS
from loguru import logger

from metrics_sender.models.schemas import MeasurementPoint
from metrics_sender.utils.config import Settings, get_settings

from domains.spool_ingest.errors import DispatchFailure


def to_influx_point(point: MeasurementPoint) -> Point:
    """Convert a measurement point to an InfluxDB point at second precision."""
    influx_point = Point(point.name)
    for key, value in point.tags.items():
        influx_point.tag(key, value)
    for key, value in point.fields.items():
        influx_point.field(key, value)
    return influx_point.time(point.timestamp, WritePrecision.S)


class InfluxClient:
    """InfluxDB client writing whole batches synchronously."""

    def __init__(self, settings: Settings = None):
        """Initialize InfluxDB client."""
        self.settings = settings or get_settings()
        self.url = self.settings.influx_url
        self.bucket = self.settings.get_influx_bucket()

        self._client: Optional[InfluxDBClient] = None
        self._write_api = None

    def connect(self):
        """Create the underlying client and write API."""
        if self._client is None:
            logger.debug(f"Connecting to InfluxDB at {self.url}...")
            self._client = InfluxDBClient(
                url=self.url,
                token=self.settings.get_influx_token(),
                org=self.settings.influx_org,
                timeout=self.settings.influx_timeout_ms,
                enable_gzip=self.settings.influx_gzip,
                verify_ssl=self.settings.influx_verify_ssl,
            )
            self._write_api = self._client.write_api(write_options=SYNCHRONOUS)

    def close(self):
        """Close InfluxDB connection."""
        if self._client:
            logger.debug("Closing InfluxDB connection...")
            self._write_api.close()
            self._client.close()
            self._write_api = None
            self._client = None

    def __enter__(self) -> "InfluxClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def write_api(self):
        """Get write API, connecting if necessary."""
        if self._write_api is None:
            self.connect()
        return self._write_api

    def ping(self) -> bool:
        """Check that the server answers."""
        if self._client is None:
            self.connect()
        return self._client.ping()

    def write_batch(self, points: Iterable[MeasurementPoint]) -> int:
        """
        Write all points with a single request.

        Returns:
            Number of points written

        Raises:
            DispatchFailure: If the server did not accept the batch
        """
        records: List[Point] = [to_influx_point(point) for point in points]
        if not records:
            return 0

        try:
            self.write_api.write(
                bucket=self.bucket,
                org=self.settings.influx_org,
                record=records,
                write_precision=WritePrecision.S,
            )
        except Exception as e:
            raise DispatchFailure(f"Could not write {len(records)} points to {self.bucket}: {e}") from e

        return len(records)


def create_influx_client(settings: Settings = None) -> InfluxClient:
    """Create and connect a client for one scan cycle."""
    client = InfluxClient(settings)
    client.connect()
    return client
