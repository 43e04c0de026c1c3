from __future__ import annotations

import itertools

import pytest

from dsmr2influx.errors import FieldNotFound, MalformedField, StreamEnded
from dsmr2influx.telegram import Telegram, find_field, frame_telegrams, read_telegram


def test_read_telegram_skips_noise_and_drops_markers() -> None:
    lines = iter(
        [
            "1-0:1.8.1(000001.000*kWh)",
            "!DEAD",
            "/ISK5\\2M550T-1012",
            "",
            "1-0:1.8.1(001581.123*kWh)",
            "!6F4A",
        ]
    )

    telegram = read_telegram(lines)

    assert telegram.header == "/ISK5\\2M550T-1012"
    assert telegram.lines == ("", "1-0:1.8.1(001581.123*kWh)")


def test_frame_telegrams_yields_consecutive_telegrams(telegram_lines) -> None:
    first = telegram_lines(timestamp="200507112856S")
    second = telegram_lines(timestamp="200507112857S")

    telegrams = frame_telegrams(first + second)

    assert find_field(next(telegrams), "0-0:1.0.0") == "200507112856S"
    assert find_field(next(telegrams), "0-0:1.0.0") == "200507112857S"


def test_frame_telegrams_is_lazy_on_endless_source(telegram_lines) -> None:
    endless = itertools.cycle(telegram_lines())

    telegrams = frame_telegrams(endless)

    for _ in range(3):
        assert len(next(telegrams)) == len(telegram_lines()) - 2


def test_stream_end_inside_telegram_is_reported(telegram_lines) -> None:
    truncated = telegram_lines()[:5]

    telegrams = frame_telegrams(truncated)

    with pytest.raises(StreamEnded) as excinfo:
        next(telegrams)
    assert excinfo.value.partial_lines == 4


def test_stream_end_before_telegram_start_is_reported() -> None:
    with pytest.raises(StreamEnded) as excinfo:
        read_telegram(iter(["garbage", "1-0:1.8.1(1*kWh)"]))
    assert excinfo.value.partial_lines == 0


def test_find_field_returns_payload_between_outer_parentheses() -> None:
    telegram = Telegram(lines=("0-1:24.2.1(200507110000S)(01643.122*m3)",))

    assert find_field(telegram, "0-1:24.2.1") == "200507110000S)(01643.122*m3"


def test_find_field_first_occurrence_wins() -> None:
    telegram = Telegram(
        lines=("1-0:1.8.1(000001.000*kWh)", "1-0:1.8.1(000002.000*kWh)")
    )

    assert find_field(telegram, "1-0:1.8.1") == "000001.000*kWh"


def test_find_field_missing_identifier() -> None:
    telegram = Telegram(lines=("1-0:1.8.1(000001.000*kWh)",))

    with pytest.raises(FieldNotFound):
        find_field(telegram, "1-0:2.8.1")


@pytest.mark.parametrize("line", ["1-0:1.8.1 000001.000*kWh", "1-0:1.8.1)000001.000*kWh("])
def test_find_field_without_payload_is_malformed(line: str) -> None:
    with pytest.raises(MalformedField):
        find_field(Telegram(lines=(line,)), "1-0:1.8.1")
