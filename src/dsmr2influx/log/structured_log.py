"""
structlog on top of the stdlib root logger, plus periodic counters.

DSMR_LOG_FORMAT selects JSON (default) or TEXT rendering, DSMR_LOGLEVEL the
threshold. Records from stdlib loggers (influxdb, requests) go through the
same renderer as our own events.

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

import logging
import os
import sys
import threading

import structlog
from structlog.typing import Processor

STATISTICS = (
    "telegrams_received",
    "telegrams_parsed",
    "parse_errors",
    "serial_errors",
    "points_written",
    "sink_errors",
)

DEFAULT_STATS_INTERVAL = 300


def _level_from_env() -> int:
    level = logging.getLevelName(os.environ.get("DSMR_LOGLEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _renderer_from_env() -> Processor:
    if os.environ.get("DSMR_LOG_FORMAT", "JSON").upper() == "JSON":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging() -> structlog.stdlib.BoundLogger:
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer_from_env(),
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(_level_from_env())

    # requests/urllib3 log every (re)connect to InfluxDB at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return structlog.get_logger()


class StatisticsLogger:
    """
    Counters for the telegram and write paths, logged as one "statistics"
    event every `interval` seconds and once more on stop().

    An interval of 0 or less disables the periodic event.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, interval: int = DEFAULT_STATS_INTERVAL):
        self._logger = logger
        self._interval = interval
        self._counts: dict[str, int] = dict.fromkeys(STATISTICS, 0)
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._interval <= 0:
            self._logger.info("statistics_logging_disabled")
            return

        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name="statistics", daemon=True)
        self._thread.start()
        self._logger.info("statistics_logging_started", interval_seconds=self._interval)

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout=2)
            self._thread = None
        self._emit()

    def increment(self, stat_name: str, count: int = 1) -> None:
        """Unknown statistic names are ignored."""
        with self._lock:
            if stat_name in self._counts:
                self._counts[stat_name] += count

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self._emit()

    def _emit(self) -> None:
        self._logger.info("statistics", **self.snapshot())


_logger: structlog.stdlib.BoundLogger | None = None
_stats_logger: StatisticsLogger | None = None


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger.bind(logger=name) if name else _logger


def get_stats_logger() -> StatisticsLogger:
    global _stats_logger
    if _stats_logger is None:
        # config imports this package, so the interval is read here directly
        try:
            interval = int(os.environ.get("DSMR_STATS_LOG_INTERVAL", DEFAULT_STATS_INTERVAL))
        except ValueError:
            interval = DEFAULT_STATS_INTERVAL
        _stats_logger = StatisticsLogger(get_logger(), interval)
    return _stats_logger
