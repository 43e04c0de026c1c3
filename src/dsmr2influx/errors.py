"""
Exceptions raised while reading, parsing and storing DSMR telegrams.

TelegramError and its subclasses are contained to a single telegram: the
telegram is logged and skipped. StreamEnded and SinkConnectionError stop the
worker thread that raised them.

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


class DsmrError(Exception):
    """Base class for all dsmr2influx errors."""


class TelegramError(DsmrError):
    """A telegram could not be turned into usage data."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        # Name of the UsageData field being assembled; set by the assembler
        self.field = field


class FieldNotFound(TelegramError):
    pass


class MalformedField(TelegramError):
    pass


class InvalidNumber(TelegramError):
    pass


class InvalidTimestampFormat(TelegramError):
    pass


class InvalidTimezoneMarker(TelegramError):
    pass


class AmbiguousLocalTime(TelegramError):
    """
    Local time maps to more than one instant.

    Never raised while timestamps are anchored at the fixed W/S offsets.
    """


class StreamEnded(DsmrError):
    """The line source is exhausted or the transport is gone."""

    def __init__(self, message: str, partial_lines: int = 0):
        super().__init__(message)
        self.partial_lines = partial_lines


class SinkUnavailable(DsmrError):
    """A single write to the sink failed; the batch is dropped."""


class SinkConnectionError(DsmrError):
    """The sink cannot be reached at all."""
