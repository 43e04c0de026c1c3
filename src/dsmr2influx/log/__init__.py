"""
Logging for dsmr2influx.

Usage:
    from dsmr2influx.log import logger, stats_logger

    logger.info("event_name", key="value")
    stats_logger.increment("telegrams_parsed")
"""

from .structured_log import StatisticsLogger, get_logger, get_stats_logger

logger = get_logger("dsmr2influx")

stats_logger = get_stats_logger()

__all__ = ["logger", "stats_logger", "get_logger", "get_stats_logger", "StatisticsLogger"]
