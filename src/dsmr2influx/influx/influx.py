"""
InfluxDB sink using the influxdb (1.x) python client

https://influxdb-python.readthedocs.io/en/latest/api-documentation.html
https://docs.influxdata.com/influxdb/v1/write_protocols/line_protocol_reference/

LIMITATIONS
* A failed write is not retried; the batch is dropped
* A lost connection is not re-established; the caller stops


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

import time

import requests
from influxdb import InfluxDBClient
from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError

from dsmr2influx.errors import SinkConnectionError, SinkUnavailable
from dsmr2influx.log import logger, stats_logger

TIME_PRECISION = "s"


class InfluxSink:
    def __init__(
        self,
        host="localhost",
        port=8086,
        database="smart_meter",
        username="root",
        password="root",
        client=None,
    ):
        """
        Args:
          :param str host: ip or dns
          :param int port:
          :param str database: created at start-up if it does not exist
          :param str username:
          :param str password:
          :param client: InfluxDBClient compatible object; created when None

        Returns:
          None
        """
        self.__host = host
        self.__port = port
        self.__database = database

        if client is None:
            client = InfluxDBClient(
                host=host, port=port, username=username, password=password, database=database
            )
        self.__client = client

        # Maintain a written point count
        self.__points_counter = 0

        logger.info("influx_sink_configured", host=host, port=port, database=database)

    @property
    def database(self):
        return self.__database

    def __ping(self):
        """
          Test if InfluxDB answers

        Returns:
          return: server version, None when not reachable
          rtype: str
        """
        try:
            version = self.__client.ping()
            logger.debug("influx_ping", host=self.__host, version=version)
            return version
        except (
            InfluxDBClientError,
            InfluxDBServerError,
            requests.exceptions.RequestException,
        ) as e:
            logger.info(
                "influx_unreachable", host=self.__host, port=self.__port, error=str(e)
            )
            return None

    def wait_for_connection(self, max_delay=3600, stopper=None):
        """
        Block till InfluxDB answers a ping.
        Start with a small delay and incrementally (+20%) make larger

        :param float max_delay: give up when the delay grows beyond this (seconds)
        :param threading.Event() stopper: give up when set
        :return: server version
        :raises SinkConnectionError: InfluxDB did not answer in time
        """
        delay = 0.1
        version = self.__ping()
        while version is None:
            time.sleep(delay)
            delay = delay * 1.2
            if delay > max_delay or (stopper is not None and stopper.is_set()):
                logger.error("influx_connection_timeout", host=self.__host, port=self.__port)
                raise SinkConnectionError(f"InfluxDB {self.__host}:{self.__port} not reachable")
            version = self.__ping()

        logger.info("influx_connected", host=self.__host, version=version)
        return version

    def ensure_database(self):
        """
        Create the database if it does not exist yet and make it the default
        for writes. Safe to call more than once.

        :raises SinkConnectionError: InfluxDB not reachable or refuses the request
        """
        if self.__ping() is None:
            raise SinkConnectionError(f"InfluxDB {self.__host}:{self.__port} not reachable")

        try:
            existing = {db["name"] for db in self.__client.get_list_database()}
            if self.__database not in existing:
                logger.info("influx_create_database", database=self.__database)
                self.__client.create_database(self.__database)
        except (
            InfluxDBClientError,
            InfluxDBServerError,
            requests.exceptions.RequestException,
        ) as e:
            logger.error("influx_ensure_database_failed", database=self.__database, error=str(e))
            raise SinkConnectionError(f"Cannot prepare database {self.__database}") from e

        self.__client.switch_database(self.__database)

    def write(self, points):
        """
        Write one batch of points at second precision.

        Args:
          :param list points: dsmr2influx.points.Point

        :raises SinkUnavailable: this write failed; the batch is dropped
        :raises SinkConnectionError: InfluxDB cannot be reached
        """
        body = [point.to_json() for point in points]

        try:
            written = self.__client.write_points(body, time_precision=TIME_PRECISION)
        except requests.exceptions.ConnectionError as e:
            stats_logger.increment("sink_errors")
            raise SinkConnectionError(f"Lost connection to InfluxDB: {e}") from e
        except (
            InfluxDBClientError,
            InfluxDBServerError,
            requests.exceptions.RequestException,
        ) as e:
            stats_logger.increment("sink_errors")
            raise SinkUnavailable(f"InfluxDB write failed: {e}") from e

        if not written:
            stats_logger.increment("sink_errors")
            raise SinkUnavailable("InfluxDB write not acknowledged")

        self.__points_counter += len(body)
        stats_logger.increment("points_written", len(body))
        logger.debug("influx_points_written", count=len(body), total=self.__points_counter)

    def close(self):
        logger.info("influx_sink_closed", points_written=self.__points_counter)
        self.__client.close()
