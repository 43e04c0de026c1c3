"""
Frame DSMR telegrams from a stream of lines and extract fields from them.

A telegram on the P1 port looks like:

  /KFM5KAIFA-METER

  1-3:0.2.8(42)
  0-0:1.0.0(200507112856S)
  1-0:1.8.1(001581.123*kWh)
  ...
  0-1:24.2.1(200507110000S)(01643.122*m3)
  !6F4A

Lines before the "/" header are skipped; the "!" line (with checksum) ends
the telegram and is not part of it. The checksum is not validated.

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

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from dsmr2influx.errors import FieldNotFound, MalformedField, StreamEnded

TELEGRAM_START = "/"
TELEGRAM_END = "!"


@dataclass(frozen=True)
class Telegram:
    """Data lines of one telegram, in the order they were received."""

    lines: tuple[str, ...]
    header: str = ""

    def __len__(self) -> int:
        return len(self.lines)


def read_telegram(lines: Iterator[str]) -> Telegram:
    """
    Read the next complete telegram from an iterator of lines.

    Blocks as long as the iterator blocks.

    Args:
        lines: iterator of decoded lines, without line endings

    Returns:
        Telegram: the data lines between header and end marker

    Raises:
        StreamEnded: the iterator was exhausted before the end marker
    """
    lines = iter(lines)
    header = None
    for line in lines:
        if line.startswith(TELEGRAM_START):
            header = line
            break

    if header is None:
        raise StreamEnded("line source ended while waiting for telegram start")

    collected: list[str] = []
    for line in lines:
        if line.startswith(TELEGRAM_END):
            return Telegram(lines=tuple(collected), header=header)
        collected.append(line)

    raise StreamEnded(
        "line source ended inside a telegram", partial_lines=len(collected)
    )


def frame_telegrams(lines: Iterable[str]) -> Iterator[Telegram]:
    """
    Lazily group lines into telegrams.

    The returned iterator can be consumed only once. It raises StreamEnded
    when the underlying lines run out; it never stops silently.
    """
    line_iter = iter(lines)
    while True:
        yield read_telegram(line_iter)


def find_field(telegram: Telegram, identifier: str) -> str:
    """
    Return the payload of the first line that starts with identifier.

    The payload is the text between the first "(" and the last ")" of the line:

      1-0:1.8.1(001581.123*kWh)                -> 001581.123*kWh
      0-1:24.2.1(200507110000S)(01643.122*m3)  -> 200507110000S)(01643.122*m3

    Raises:
        FieldNotFound: no line starts with identifier
        MalformedField: the matching line has no parenthesised payload
    """
    for line in telegram.lines:
        if not line.startswith(identifier):
            continue

        start = line.find("(")
        end = line.rfind(")")
        if start < 0 or end <= start:
            raise MalformedField(f"{identifier}: no payload in line {line!r}")
        return line[start + 1 : end]

    raise FieldNotFound(f"{identifier}: not present in telegram")
