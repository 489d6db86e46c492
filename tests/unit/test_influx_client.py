from unittest.mock import MagicMock

import pytest
from influxdb_client import WritePrecision

from metrics_sender.models.schemas import MeasurementPoint
from metrics_sender.utils.config import Settings
from metrics_sender.utils.influx_client import InfluxClient, to_influx_point

from domains.spool_ingest.encoder import encode_fields
from domains.spool_ingest.errors import DispatchFailure


@pytest.fixture
def points():
    return encode_fields(
        {
            "state": "1",
            "timestamp": "1000000000",
            "perfdata": "used=85%;90;95",
            "host": "web01",
        }
    )


def test_state_point_line_protocol():
    point = MeasurementPoint(name="state", tags={"host": "web01"}, fields={"value": 1}, timestamp=1000000000)

    assert to_influx_point(point).to_line_protocol() == "state,host=web01 value=1i 1000000000"


def test_metric_point_line_protocol(points):
    line = to_influx_point(points[0]).to_line_protocol()

    assert line.startswith("metric,host=web01,label=used,uom=% ")
    assert "value=85" in line
    assert "warn=90" in line
    assert line.endswith(" 1000000000")


def test_write_batch_sends_one_request(points):
    client = InfluxClient(Settings(_env_file=None, influx_database="nagios", influx_retention_policy="autogen"))
    client._write_api = MagicMock()

    written = client.write_batch(points)

    assert written == 2
    client._write_api.write.assert_called_once()
    kwargs = client._write_api.write.call_args.kwargs
    assert kwargs["bucket"] == "nagios/autogen"
    assert kwargs["write_precision"] == WritePrecision.S
    assert len(kwargs["record"]) == 2


def test_write_batch_skips_empty_batches():
    client = InfluxClient(Settings(_env_file=None))
    client._write_api = MagicMock()

    assert client.write_batch([]) == 0
    client._write_api.write.assert_not_called()


def test_write_errors_become_dispatch_failures(points):
    client = InfluxClient(Settings(_env_file=None))
    client._write_api = MagicMock()
    client._write_api.write.side_effect = ConnectionError("refused")

    with pytest.raises(DispatchFailure):
        client.write_batch(points)


def test_close_without_connect_is_noop():
    client = InfluxClient(Settings(_env_file=None))

    client.close()

    assert client._client is None
