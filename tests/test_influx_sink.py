from __future__ import annotations

import threading

import pytest
import requests
from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError

from dsmr2influx.errors import SinkConnectionError, SinkUnavailable
from dsmr2influx.influx import TIME_PRECISION, InfluxSink
from dsmr2influx.points import Point


class StubClient:
    """Stands in for influxdb.InfluxDBClient."""

    def __init__(self, databases=(), ping_failures=0, write_result=None, ping_error=None):
        self.databases = list(databases)
        self.ping_failures = ping_failures
        self.ping_error = ping_error or requests.exceptions.ConnectionError("connection refused")
        self.write_result = write_result
        self.pings = 0
        self.created: list[str] = []
        self.switched: list[str] = []
        self.writes: list[tuple[list[dict], str]] = []
        self.closed = False

    def ping(self):
        self.pings += 1
        if self.pings <= self.ping_failures:
            raise self.ping_error
        return "1.8.10"

    def get_list_database(self):
        return [{"name": name} for name in self.databases]

    def create_database(self, name):
        self.created.append(name)
        self.databases.append(name)

    def switch_database(self, name):
        self.switched.append(name)

    def write_points(self, points, time_precision=None):
        if isinstance(self.write_result, Exception):
            raise self.write_result
        self.writes.append((points, time_precision))
        return True if self.write_result is None else self.write_result

    def close(self):
        self.closed = True


POINTS = [
    Point(name="power_receiving", time=1588843736, value=2.027, unit="kW"),
    Point(name="gas_reading", time=1588842000, value=1643.122, unit="m3"),
]


def test_ensure_database_creates_missing_database() -> None:
    client = StubClient(databases=["_internal"])
    sink = InfluxSink(database="smart_meter", client=client)

    sink.ensure_database()
    sink.ensure_database()

    assert client.created == ["smart_meter"]
    assert client.switched == ["smart_meter", "smart_meter"]


def test_ensure_database_unreachable_is_fatal() -> None:
    client = StubClient(ping_failures=1)
    sink = InfluxSink(client=client)

    with pytest.raises(SinkConnectionError):
        sink.ensure_database()
    assert client.created == []


def test_wait_for_connection_retries_until_ping_succeeds() -> None:
    client = StubClient(ping_failures=2)
    sink = InfluxSink(client=client)

    assert sink.wait_for_connection(max_delay=10) == "1.8.10"
    assert client.pings == 3


def test_wait_for_connection_gives_up() -> None:
    client = StubClient(ping_failures=1000)
    sink = InfluxSink(client=client)

    with pytest.raises(SinkConnectionError):
        sink.wait_for_connection(max_delay=0.15)


@pytest.mark.parametrize(
    "error",
    [
        InfluxDBServerError("503 Service Unavailable"),
        InfluxDBClientError("unable to parse authentication credentials", 401),
    ],
)
def test_error_reply_to_ping_counts_as_unreachable(error) -> None:
    sink = InfluxSink(client=StubClient(ping_failures=1000, ping_error=error))

    with pytest.raises(SinkConnectionError):
        sink.wait_for_connection(max_delay=0.15)
    with pytest.raises(SinkConnectionError):
        sink.ensure_database()


def test_wait_for_connection_outlasts_server_errors() -> None:
    client = StubClient(ping_failures=2, ping_error=InfluxDBServerError("503 Service Unavailable"))
    sink = InfluxSink(client=client)

    assert sink.wait_for_connection(max_delay=10) == "1.8.10"
    assert client.pings == 3


def test_wait_for_connection_stops_on_stopper() -> None:
    stopper = threading.Event()
    stopper.set()
    sink = InfluxSink(client=StubClient(ping_failures=1000))

    with pytest.raises(SinkConnectionError):
        sink.wait_for_connection(max_delay=3600, stopper=stopper)


def test_write_sends_one_batch_at_second_precision() -> None:
    client = StubClient()
    sink = InfluxSink(client=client)

    sink.write(POINTS)

    assert client.writes == [([point.to_json() for point in POINTS], TIME_PRECISION)]
    assert TIME_PRECISION == "s"


@pytest.mark.parametrize(
    "failure",
    [
        InfluxDBClientError("field type conflict", 400),
        InfluxDBServerError("timeout"),
        requests.exceptions.ReadTimeout("read timed out"),
        False,
    ],
)
def test_single_write_failure_is_recoverable(failure) -> None:
    sink = InfluxSink(client=StubClient(write_result=failure))

    with pytest.raises(SinkUnavailable):
        sink.write(POINTS)


def test_lost_connection_on_write_is_fatal() -> None:
    client = StubClient(write_result=requests.exceptions.ConnectionError("reset"))
    sink = InfluxSink(client=client)

    with pytest.raises(SinkConnectionError):
        sink.write(POINTS)


def test_close_closes_client() -> None:
    client = StubClient()

    InfluxSink(client=client).close()

    assert client.closed
