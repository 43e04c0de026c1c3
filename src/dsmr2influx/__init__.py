"""
DSMR2INFLUX - InfluxDB writer for the Dutch Smart Meter (DSMR).

This package reads DSMR telegrams from smart energy meters via P1 USB cable
and stores electricity and gas readings in an InfluxDB database.
"""

__version__ = "1.0.0"
__license__ = "GPLv3"

__all__ = ["__version__", "__license__"]
