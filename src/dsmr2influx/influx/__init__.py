from .influx import TIME_PRECISION as TIME_PRECISION
from .influx import InfluxSink as InfluxSink

__all__ = ["InfluxSink", "TIME_PRECISION"]
