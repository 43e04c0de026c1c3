"""
Map parsed usage data to InfluxDB points.

Every UsageData becomes seven points, one per measurement:

  measurement: electricity_reading_low_tariff
  time:        1588843736        (Unix seconds)
  fields:      {"value": 1581.123}
  tags:        {"unit": "kWh"}

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

from dataclasses import dataclass
from datetime import datetime

from dsmr2influx import obis
from dsmr2influx.p1_parser import Measurement, UsageData

# Point names, in the order they are written
ELECTRICITY_POINTS = (
    obis.ELECTRICITY_READING_LOW_TARIFF,
    obis.ELECTRICITY_READING_NORMAL_TARIFF,
    obis.ELECTRICITY_RETURNED_READING_LOW_TARIFF,
    obis.ELECTRICITY_RETURNED_READING_NORMAL_TARIFF,
    obis.POWER_RECEIVING,
    obis.POWER_RETURNING,
)
POINT_NAMES = ELECTRICITY_POINTS + (obis.GAS_READING,)


@dataclass(frozen=True)
class Point:
    name: str
    time: int
    value: float
    unit: str

    def to_json(self) -> dict:
        """Point in the format InfluxDBClient.write_points() expects."""
        return {
            "measurement": self.name,
            "time": self.time,
            "fields": {"value": self.value},
            "tags": {"unit": self.unit},
        }


def create_point(name: str, measurement: Measurement, timestamp: datetime) -> Point:
    return Point(
        name=name,
        time=int(timestamp.timestamp()),
        value=measurement.value,
        unit=measurement.unit,
    )


def usage_to_points(data: UsageData) -> list[Point]:
    """Electricity points carry the electricity timestamp, gas its own."""
    points = [
        create_point(name, getattr(data, name), data.electricity_timestamp)
        for name in ELECTRICITY_POINTS
    ]
    points.append(create_point(obis.GAS_READING, data.gas_reading, data.gas_timestamp))
    return points
