from __future__ import annotations

from collections.abc import Callable

import pytest

from dsmr2influx.telegram import Telegram

DATA_LINES = {
    "0-0:1.0.0": "0-0:1.0.0(200507112856S)",
    "1-0:1.8.1": "1-0:1.8.1(001581.123*kWh)",
    "1-0:1.8.2": "1-0:1.8.2(001435.706*kWh)",
    "1-0:2.8.1": "1-0:2.8.1(000012.001*kWh)",
    "1-0:2.8.2": "1-0:2.8.2(000034.002*kWh)",
    "1-0:1.7.0": "1-0:1.7.0(02.027*kW)",
    "1-0:2.7.0": "1-0:2.7.0(00.113*kW)",
    "0-1:24.2.1": "0-1:24.2.1(200507110000S)(01643.122*m3)",
}


def _telegram_lines(
    timestamp: str = "200507112856S",
    drop: tuple[str, ...] = (),
    replace: dict[str, str] | None = None,
) -> list[str]:
    """Raw P1 lines of one telegram, header and end marker included."""
    fields = dict(DATA_LINES)
    fields["0-0:1.0.0"] = f"0-0:1.0.0({timestamp})"
    fields.update(replace or {})

    lines = ["/KFM5KAIFA-METER", "", "1-3:0.2.8(42)", "0-0:96.14.0(0002)"]
    lines += [line for identifier, line in fields.items() if identifier not in drop]
    lines.append("!6F4A")
    return lines


@pytest.fixture()
def telegram_lines() -> Callable[..., list[str]]:
    return _telegram_lines


@pytest.fixture()
def make_telegram() -> Callable[..., Telegram]:
    def factory(**kwargs) -> Telegram:
        lines = _telegram_lines(**kwargs)
        return Telegram(lines=tuple(lines[1:-1]), header=lines[0])

    return factory
