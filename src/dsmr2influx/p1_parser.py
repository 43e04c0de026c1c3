"""
Parse DSMR telegram payloads into typed usage data.

  parse_measurement("001581.123*kWh")             -> Measurement(1581.123, "kWh")
  parse_timestamp("200507112856S")                -> 2020-05-07 11:28:56+02:00
  split_gas("200511123008S)(01643.122*m3")        -> (Measurement(1643.122, "m3"),
                                                      2020-05-11 12:30:08+02:00)

Timestamps are anchored at the offset the meter reports itself:
W(inter) is UTC+1, S(ummer) is UTC+2. No timezone database is used.

        This program is free software: you can redistribute it and/or modify
        it under the terms of the GNU General Public License as published by
        the Free Software Foundation, either version 3 of the License, or
        (at your option) any later version.

        This program is distributed in the hope that it will be useful,
        but WITHOUT ANY WARRANTY; without even the implied warranty of
        MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
        GNU General Public License for more details.

        You should have received a copy of the GNU General Public License
        along with this program.  If not, see <http://www.gnu.org/licenses/>.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from dsmr2influx import obis
from dsmr2influx.errors import (
    InvalidNumber,
    InvalidTimestampFormat,
    InvalidTimezoneMarker,
    MalformedField,
    TelegramError,
)
from dsmr2influx.log import logger
from dsmr2influx.telegram import Telegram, find_field

CET = timezone(timedelta(hours=1), "CET")
CEST = timezone(timedelta(hours=2), "CEST")

TIMEZONE_MARKERS = {
    "W": CET,
    "S": CEST,
}

# Plain ASCII decimal; float() would also accept "nan", "1e3", "1_0" and non-ASCII digits
_NUMBER = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)")
_LOCAL_TIME = re.compile(r"[0-9]{12}")

GAS_SEPARATOR = ")("


@dataclass(frozen=True)
class Measurement:
    value: float
    unit: str


@dataclass(frozen=True)
class UsageData:
    """One fully parsed telegram."""

    electricity_timestamp: datetime
    electricity_reading_low_tariff: Measurement
    electricity_reading_normal_tariff: Measurement
    electricity_returned_reading_low_tariff: Measurement
    electricity_returned_reading_normal_tariff: Measurement
    power_receiving: Measurement
    power_returning: Measurement
    gas_reading: Measurement
    gas_timestamp: datetime


def parse_measurement(payload: str) -> Measurement:
    """
    Split "<number>*<unit>" into a Measurement.

    The unit is kept verbatim.

    Raises:
        InvalidNumber: no "*" in payload, or the number part is not a decimal
    """
    number, sep, unit = payload.partition("*")
    if not sep:
        raise InvalidNumber(f"no unit separator in {payload!r}")

    if _NUMBER.fullmatch(number) is None:
        raise InvalidNumber(f"not a number: {number!r}")

    return Measurement(value=float(number), unit=unit)


def parse_timestamp(payload: str, fmt: str = obis.DATE_FORMAT) -> datetime:
    """
    Parse a DSMR "YYMMDDhhmmssX" timestamp, X being W or S.

    Args:
        payload: timestamp with trailing marker
        fmt: strptime format of the local time part

    Returns:
        datetime: timezone aware, at UTC+1 (W) or UTC+2 (S)

    Raises:
        InvalidTimezoneMarker: last character is not W or S
        InvalidTimestampFormat: local time part is not a valid 12 digit time
    """
    tz = TIMEZONE_MARKERS.get(payload[-1:])
    if tz is None:
        raise InvalidTimezoneMarker(f"unknown timezone marker in {payload!r}")

    local_time = payload[:-1]
    if _LOCAL_TIME.fullmatch(local_time) is None:
        raise InvalidTimestampFormat(f"expected 12 digits, got {local_time!r}")

    try:
        naive = datetime.strptime(local_time, fmt)
    except ValueError as e:
        raise InvalidTimestampFormat(f"invalid timestamp {local_time!r}: {e}") from e

    return naive.replace(tzinfo=tz)


def split_gas(payload: str) -> tuple[Measurement, datetime]:
    """
    Parse the composite gas payload "<timestamp>)(<measurement>".

    The field extractor strips the outer parentheses only, so the separator
    between the two groups is still present. A ")" inside the unit is not
    supported.

    Raises:
        MalformedField: no ")(" separator
    """
    offset = payload.find(")")
    if offset < 0 or payload[offset : offset + len(GAS_SEPARATOR)] != GAS_SEPARATOR:
        raise MalformedField(f"no gas separator in {payload!r}")

    gas_timestamp = parse_timestamp(payload[:offset])
    gas_reading = parse_measurement(payload[offset + len(GAS_SEPARATOR) :])
    return gas_reading, gas_timestamp


class TelegramAssembler:
    """
    Build UsageData from a framed telegram.

    A telegram is all or nothing: the first field that cannot be found or
    parsed raises, and no UsageData is produced.
    """

    def __init__(self, identifiers: Mapping[str, str] = obis.DSMR_IDENTIFIERS):
        """
        Args:
          :param Mapping identifiers: UsageData field name -> OBIS identifier;
          every field in obis.DSMR_IDENTIFIERS must be present

        Raises:
          KeyError: a required field has no identifier
        """
        missing = [name for name in obis.DSMR_IDENTIFIERS if name not in identifiers]
        if missing:
            raise KeyError(f"no OBIS identifier for: {', '.join(missing)}")

        self.__identifiers = dict(identifiers)

    def __field(self, telegram: Telegram, name: str, parse):
        try:
            return parse(find_field(telegram, self.__identifiers[name]))
        except TelegramError as e:
            e.field = name
            raise

    def assemble(self, telegram: Telegram) -> UsageData:
        """
        Raises:
          TelegramError: any field is missing or malformed; .field names it
        """
        electricity_timestamp = self.__field(
            telegram, obis.ELECTRICITY_TIMESTAMP, parse_timestamp
        )
        readings = {
            name: self.__field(telegram, name, parse_measurement)
            for name in (
                obis.ELECTRICITY_READING_LOW_TARIFF,
                obis.ELECTRICITY_READING_NORMAL_TARIFF,
                obis.ELECTRICITY_RETURNED_READING_LOW_TARIFF,
                obis.ELECTRICITY_RETURNED_READING_NORMAL_TARIFF,
                obis.POWER_RECEIVING,
                obis.POWER_RETURNING,
            )
        }
        gas_reading, gas_timestamp = self.__field(telegram, obis.GAS_READING, split_gas)

        logger.debug(
            "telegram_assembled",
            electricity_timestamp=electricity_timestamp.isoformat(),
            gas_timestamp=gas_timestamp.isoformat(),
        )

        return UsageData(
            electricity_timestamp=electricity_timestamp,
            gas_reading=gas_reading,
            gas_timestamp=gas_timestamp,
            **readings,
        )
