#!/usr/bin/env python3

"""
DESCRIPTION
  Read DSMR (Dutch Smart Meter Requirements) smart energy meter via P1 USB cable
  and store the readings in InfluxDB

2 Worker threads:
  - P1 USB serial port reader & DSMR telegram parser
  - InfluxDB writer

The stored fields are configured in obis.py


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

import os
import queue
import signal
import socket
import sys
import threading

from dsmr2influx import __version__
from dsmr2influx import config as cfg
from dsmr2influx import influx as influx
from dsmr2influx import p1_serial as p1
from dsmr2influx import pipeline as pipeline
from dsmr2influx.errors import SinkConnectionError, StreamEnded
from dsmr2influx.log import logger, stats_logger

# DEFAULT exit code
# status=1/FAILURE
__exit_code = 1

# Keeps the instance lock alive for the lifetime of the process
__lock_socket = None


def acquire_instance_lock():
    """Ensure that only one instance is started (Linux only)."""
    global __lock_socket

    if sys.platform != "linux":
        return

    script = os.path.splitext(os.path.basename(__file__))[0]
    lockfile = "\0" + "dsmr2influx_" + script + "_lockfile"
    try:
        s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        # Create an abstract socket, by prefixing it with null.
        s.bind(lockfile)
        __lock_socket = s
        logger.info("application_started", file=__file__, version=__version__)
    except OSError as err:
        logger.error("instance_already_running", lockfile=lockfile, error=str(err))
        sys.exit(1)


def close():
    """Close the application gracefully."""
    stats_logger.stop()
    logger.info("application_exiting", exit_code=__exit_code)
    sys.exit(__exit_code)


# ------------------------------------------------------------------------------------
# LATE GLOBALS
# ------------------------------------------------------------------------------------
t_threads_stopper = threading.Event()


def exit_gracefully(signal, stackframe):
    """Exit gracefully on signal.

    Args:
        signal: the associated signalnumber
        stackframe: current stack frame
    """
    logger.debug("signal_received", signal=signal)

    # status=0/SUCCESS
    global __exit_code
    __exit_code = 0

    t_threads_stopper.set()
    logger.info("graceful_shutdown_initiated")


def main():
    """Main entry point for the application."""
    logger.debug("main_started")

    stats_logger.start()

    logger.info(
        "configuration_loaded",
        serial_port=cfg.ser_port,
        production=cfg.PRODUCTION,
        influxdb_host=cfg.INFLUXDB_HOST,
        influxdb_port=cfg.INFLUXDB_PORT,
        influxdb_database=cfg.INFLUXDB_DATABASE,
        stats_interval=cfg.STATS_LOG_INTERVAL,
    )

    sink = influx.InfluxSink(
        host=cfg.INFLUXDB_HOST,
        port=cfg.INFLUXDB_PORT,
        database=cfg.INFLUXDB_DATABASE,
        username=cfg.INFLUXDB_USERNAME,
        password=cfg.INFLUXDB_PASSWORD,
    )

    try:
        sink.wait_for_connection(cfg.INFLUXDB_CONNECT_TIMEOUT, stopper=t_threads_stopper)
        sink.ensure_database()
        lines = p1.P1LineSource(stopper=t_threads_stopper)
    except (SinkConnectionError, StreamEnded) as e:
        logger.error("startup_failed", error_type=type(e).__name__, error=str(e))
        sink.close()
        return

    usage_queue = queue.Queue()
    t_write = pipeline.TaskWriteInflux(usage_queue, sink, t_threads_stopper)
    t_parse = pipeline.TaskParseTelegrams(lines, usage_queue, t_threads_stopper)

    # Start the writer first, so nothing waits in the queue longer than needed
    t_write.start()
    t_parse.start()

    # block till t_parse stops receiving telegrams/exits
    t_parse.join()
    logger.debug("parse_thread_exited")

    # t_write empties the queue before it stops
    t_write.join()
    logger.debug("write_thread_exited", failed=t_write.failed)

    lines.close()
    sink.close()

    logger.debug("main_completed")
    return


def run():
    """Console script entry point."""
    logger.debug("entrypoint_started")
    acquire_instance_lock()

    signal.signal(signal.SIGINT, exit_gracefully)
    signal.signal(signal.SIGTERM, exit_gracefully)

    # start main program
    main()

    logger.debug("entrypoint_completed")
    close()


# ------------------------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------------------------
if __name__ == "__main__":
    run()
