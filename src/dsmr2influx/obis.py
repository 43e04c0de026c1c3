"""
OBIS identifiers of the DSMR P1 fields that are stored.

Keys are the UsageData field names, values the OBIS identifier the line
starts with, e.g.

  1-0:1.8.1(016230.132*kWh)
  0-1:24.2.1(200511123008S)(01643.122*m3)

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

from types import MappingProxyType

ELECTRICITY_TIMESTAMP = "electricity_timestamp"
ELECTRICITY_READING_LOW_TARIFF = "electricity_reading_low_tariff"
ELECTRICITY_READING_NORMAL_TARIFF = "electricity_reading_normal_tariff"
ELECTRICITY_RETURNED_READING_LOW_TARIFF = "electricity_returned_reading_low_tariff"
ELECTRICITY_RETURNED_READING_NORMAL_TARIFF = "electricity_returned_reading_normal_tariff"
POWER_RECEIVING = "power_receiving"
POWER_RETURNING = "power_returning"
GAS_READING = "gas_reading"

# Order is the order in which the assembler looks the fields up
DSMR_IDENTIFIERS = MappingProxyType(
    {
        ELECTRICITY_TIMESTAMP: "0-0:1.0.0",
        ELECTRICITY_READING_LOW_TARIFF: "1-0:1.8.1",
        ELECTRICITY_READING_NORMAL_TARIFF: "1-0:1.8.2",
        ELECTRICITY_RETURNED_READING_LOW_TARIFF: "1-0:2.8.1",
        ELECTRICITY_RETURNED_READING_NORMAL_TARIFF: "1-0:2.8.2",
        POWER_RECEIVING: "1-0:1.7.0",
        POWER_RETURNING: "1-0:2.7.0",
        GAS_READING: "0-1:24.2.1",
    }
)

# DSMR local time, without the trailing W/S marker
DATE_FORMAT = "%y%m%d%H%M%S"
