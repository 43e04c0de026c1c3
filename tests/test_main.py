from __future__ import annotations

import signal
import threading

import pytest

import dsmr2influx.__main__ as app
from dsmr2influx.errors import SinkConnectionError, StreamEnded


class FakeStats:
    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass


class FakeLines:
    """Yields scripted lines, then optionally delivers SIGTERM before ending."""

    def __init__(self, lines, terminate=False):
        self.lines = list(lines)
        self.terminate = terminate
        self.closed = False

    def __iter__(self):
        yield from self.lines
        if self.terminate:
            app.exit_gracefully(signal.SIGTERM, None)

    def close(self) -> None:
        self.closed = True


class FakeSink:
    def __init__(self, connect_error=None, write_error=None):
        self.connect_error = connect_error
        self.write_error = write_error
        self.batches: list[list] = []
        self.closed = False

    def wait_for_connection(self, max_delay, stopper=None):
        if self.connect_error is not None:
            raise self.connect_error
        return "1.8.10"

    def ensure_database(self) -> None:
        pass

    def write(self, points) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.batches.append(list(points))

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def patched_app(monkeypatch):
    """Runs the entry point against fakes; returns a setup function."""
    monkeypatch.setattr(app, "__exit_code", 1)
    monkeypatch.setattr(app, "t_threads_stopper", threading.Event())
    monkeypatch.setattr(app, "stats_logger", FakeStats())
    monkeypatch.setattr(app, "acquire_instance_lock", lambda: None)
    monkeypatch.setattr(app.signal, "signal", lambda signum, handler: None)

    def setup(sink: FakeSink, lines: FakeLines | None = None, source_error=None):
        def make_source(stopper=None):
            if source_error is not None:
                raise source_error
            return lines

        monkeypatch.setattr(app.influx, "InfluxSink", lambda **kwargs: sink)
        monkeypatch.setattr(app.p1, "P1LineSource", make_source)

    return setup


def _exit_code() -> int:
    with pytest.raises(SystemExit) as excinfo:
        app.run()
    return excinfo.value.code


def test_source_ending_exits_non_zero(patched_app, telegram_lines) -> None:
    sink = FakeSink()
    lines = FakeLines(telegram_lines())
    patched_app(sink, lines)

    assert _exit_code() == 1
    assert len(sink.batches) == 1
    assert lines.closed
    assert sink.closed


def test_lost_sink_connection_exits_non_zero(patched_app, telegram_lines) -> None:
    sink = FakeSink(write_error=SinkConnectionError("connection reset"))
    patched_app(sink, FakeLines(telegram_lines() + telegram_lines()))

    assert _exit_code() == 1
    assert sink.batches == []


def test_signal_shutdown_exits_zero(patched_app, telegram_lines) -> None:
    sink = FakeSink()
    patched_app(sink, FakeLines(telegram_lines(), terminate=True))

    assert _exit_code() == 0
    assert len(sink.batches) == 1
    assert app.t_threads_stopper.is_set()


def test_unreachable_sink_at_startup_exits_non_zero(patched_app) -> None:
    sink = FakeSink(connect_error=SinkConnectionError("InfluxDB localhost:8086 not reachable"))
    lines = FakeLines([])
    patched_app(sink, lines)

    assert _exit_code() == 1
    assert sink.closed
    assert sink.batches == []


def test_unopenable_serial_port_exits_non_zero(patched_app) -> None:
    sink = FakeSink()
    patched_app(sink, source_error=StreamEnded("Cannot open P1 source /dev/ttyUSB0"))

    assert _exit_code() == 1
    assert sink.closed
