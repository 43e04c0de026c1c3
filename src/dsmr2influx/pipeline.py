"""
Producer and consumer threads between the P1 port and InfluxDB.

  P1LineSource -> TaskParseTelegrams -> queue.Queue -> TaskWriteInflux -> InfluxSink

The queue is unbounded; the meter sends a telegram every second, so the
producer never has to wait for InfluxDB. Both threads share one stopper
event: whichever stops first sets it, the other follows. The writer drains
what is already queued before it stops.


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

import queue
import threading

from dsmr2influx.errors import SinkConnectionError, SinkUnavailable, StreamEnded, TelegramError
from dsmr2influx.log import logger, stats_logger
from dsmr2influx.p1_parser import TelegramAssembler
from dsmr2influx.points import usage_to_points
from dsmr2influx.telegram import frame_telegrams


class TaskParseTelegrams(threading.Thread):
    def __init__(self, lines, usage_queue, stopper, assembler=None):
        """

        Args:
          :param iterable lines: P1 lines, e.g. P1LineSource
          :param queue.Queue() usage_queue: receives UsageData
          :param threading.Event() stopper: stops thread; set when this thread exits
          :param TelegramAssembler assembler: defaults to the DSMR fields
        """
        super().__init__(name="parse-telegrams")
        self.__lines = lines
        self.__queue = usage_queue
        self.__stopper = stopper
        self.__assembler = assembler if assembler is not None else TelegramAssembler()
        self.__counter = 0

    def __parse(self):
        for telegram in frame_telegrams(self.__lines):
            if self.__stopper.is_set():
                return

            self.__counter += 1
            stats_logger.increment("telegrams_received")

            try:
                data = self.__assembler.assemble(telegram)
            except TelegramError as e:
                logger.warning(
                    "telegram_skipped",
                    telegram=self.__counter,
                    error_type=type(e).__name__,
                    field=e.field,
                    error=str(e),
                )
                stats_logger.increment("parse_errors")
                continue

            self.__queue.put(data)
            stats_logger.increment("telegrams_parsed")
            logger.debug("telegram_queued", telegram=self.__counter, header=telegram.header)

    def run(self):
        logger.debug("parse_thread_started")
        try:
            self.__parse()

        except StreamEnded as e:
            if self.__stopper.is_set():
                logger.info("line_source_stopped")
            else:
                logger.error("line_source_ended", error=str(e), partial_lines=e.partial_lines)

        finally:
            self.__stopper.set()

        logger.debug("parse_thread_stopped", telegrams=self.__counter)


class TaskWriteInflux(threading.Thread):
    def __init__(self, usage_queue, sink, stopper):
        """

        Args:
          :param queue.Queue() usage_queue: UsageData to write
          :param InfluxSink sink: anything with write(points)
          :param threading.Event() stopper: stops thread once the queue is empty;
          set by this thread when the sink connection is lost
        """
        super().__init__(name="write-influx")
        self.__queue = usage_queue
        self.__sink = sink
        self.__stopper = stopper
        self.__failed = False

    @property
    def failed(self):
        """True when the thread stopped because the sink connection was lost."""
        return self.__failed

    def __write(self):
        while not (self.__stopper.is_set() and self.__queue.empty()):
            try:
                data = self.__queue.get(timeout=0.1)
            except queue.Empty:
                continue

            points = usage_to_points(data)
            try:
                self.__sink.write(points)
            except SinkUnavailable as e:
                logger.warning(
                    "telegram_write_failed",
                    electricity_timestamp=data.electricity_timestamp.isoformat(),
                    error=str(e),
                )
                continue

            logger.info(
                "telegram_written",
                electricity_timestamp=data.electricity_timestamp.isoformat(),
                points=len(points),
            )

    def run(self):
        logger.debug("write_thread_started")
        try:
            self.__write()

        except SinkConnectionError as e:
            logger.error("influx_connection_lost", error=str(e), queued=self.__queue.qsize())
            self.__failed = True
            self.__stopper.set()

        logger.debug("write_thread_stopped")
