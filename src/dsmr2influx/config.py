"""
  Configuration for dsmr2influx

  Read from environment variables with sensible defaults.
  For Docker deployments, set environment variables instead of editing this file.

  Configure:
  - USB P1 serial port
  - InfluxDB server and database
  - Simulation mode
  - Logging

  The stored DSMR fields are configured in obis.py

"""

import os


def _get_bool_env(name, default):
    """Get boolean value from environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _get_int_env(name, default):
    """Get integer value from environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# [ LOGLEVELS ]
# DEBUG, INFO, WARNING, ERROR, CRITICAL
loglevel = os.environ.get("DSMR_LOGLEVEL", "INFO")

# [ LOG FORMAT ]
# JSON for structured JSON logs, TEXT for human-readable console logs
LOG_FORMAT = os.environ.get("DSMR_LOG_FORMAT", "JSON")

# [ STATISTICS LOGGING INTERVAL ]
# Interval in seconds for logging statistics (default: 300 = 5 minutes)
# Set to 0 to disable statistics logging
STATS_LOG_INTERVAL = _get_int_env("DSMR_STATS_LOG_INTERVAL", 300)

# [ PRODUCTION ]
# True if run in production
# False when running in simulation
PRODUCTION = _get_bool_env("DSMR_PRODUCTION", True)

# File below is used when PRODUCTION is set to False
# Simulation file can be created in bash/Linux:
# tail -f /dev/ttyUSB0 > dsmr.raw (wait 10-15sec and hit ctrl-C)
# (assuming that P1 USB is connected as ttyUSB0)
# Optionally add string "EOF" (without quotes) as last line
SIMULATORFILE = os.environ.get("DSMR_SIMULATORFILE", "tests/data/dsmr.raw")

# [ InfluxDB ]
INFLUXDB_HOST = os.environ.get("INFLUXDB_HOST", "localhost")
INFLUXDB_PORT = _get_int_env("INFLUXDB_PORT", 8086)
INFLUXDB_DATABASE = os.environ.get("INFLUXDB_DATABASE", "smart_meter")
INFLUXDB_USERNAME = os.environ.get("INFLUXDB_USERNAME", "root")
INFLUXDB_PASSWORD = os.environ.get("INFLUXDB_PASSWORD", "root")

# Give up waiting for InfluxDB at start-up when the retry delay exceeds this (seconds)
INFLUXDB_CONNECT_TIMEOUT = _get_int_env("INFLUXDB_CONNECT_TIMEOUT", 3600)

# [ P1 USB serial ]
ser_port = os.environ.get("SERIAL_PORT", "/dev/ttyUSB0")
ser_baudrate = _get_int_env("SERIAL_BAUDRATE", 115200)
