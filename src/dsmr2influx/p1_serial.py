"""
Read lines from the P1 USB serial port.


To test in bash the P1 usb connector:
raw -echo < /dev/ttyUSB0; cat -vt /dev/ttyUSB0

OR
sudo apt-get install -y python3-serial
sudo chmod o+rw /dev/ttyUSB0
python3 -m serial.tools.miniterm /dev/ttyUSB0 115200


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

import serial

from dsmr2influx import config as cfg
from dsmr2influx.errors import StreamEnded
from dsmr2influx.log import logger, stats_logger
from dsmr2influx.telegram import TELEGRAM_END

# Simulation file end marker
SIMULATOR_EOF = "EOF"


class P1LineSource:
    def __init__(
        self,
        stopper=None,
        port=cfg.ser_port,
        baudrate=cfg.ser_baudrate,
        production=cfg.PRODUCTION,
        simulator_file=cfg.SIMULATORFILE,
        simulator_delay=1.0,
        tty=None,
    ):
        """
        Iterable of decoded P1 lines, without CR LF.

        Args:
          :param threading.Event() stopper: ends iteration at the next read timeout
          :param str port: serial device
          :param int baudrate:
          :param bool production: read the serial port; False reads simulator_file
          :param str simulator_file: recorded telegrams, used when not in production
          :param float simulator_delay: pause after each telegram in simulation
          :param tty: already opened port or file like object; skips opening

        Raises:
          StreamEnded: port or file cannot be opened
        """
        self.__stopper = stopper
        self.__production = production
        self.__simulator_delay = simulator_delay

        if tty is not None:
            self.__tty = tty
            return

        try:
            if production:
                # [ Serial parameters ] 8N1, no flow control
                self.__tty = serial.Serial()
                self.__tty.port = port
                self.__tty.baudrate = baudrate
                self.__tty.bytesize = serial.EIGHTBITS
                self.__tty.parity = serial.PARITY_NONE
                self.__tty.stopbits = serial.STOPBITS_ONE
                self.__tty.xonxoff = False
                self.__tty.rtscts = False
                self.__tty.timeout = 1
                self.__tty.open()
                logger.info("serial_port_opened", port=port, baudrate=baudrate)
            else:
                self.__tty = open(simulator_file, "rb")
                logger.info("simulator_file_opened", file=simulator_file)

        except (serial.SerialException, OSError) as e:
            device = port if production else simulator_file
            logger.error(
                "serial_port_open_failed",
                error_type=type(e).__name__,
                error=str(e),
                port=device,
            )
            stats_logger.increment("serial_errors")
            raise StreamEnded(f"Cannot open P1 source {device}") from e

    def __stopped(self):
        return self.__stopper is not None and self.__stopper.is_set()

    def __iter__(self):
        buffer = b""
        while True:
            try:
                data = self.__tty.readline()
            except (serial.SerialException, OSError) as e:
                logger.error("serial_read_failed", error_type=type(e).__name__, error=str(e))
                stats_logger.increment("serial_errors")
                raise StreamEnded("P1 transport lost") from e

            if self.__production:
                buffer += data
                # Read timed out, possibly halfway a line; keep what we have
                if not buffer.endswith(b"\n"):
                    if self.__stopped():
                        logger.debug("serial_read_stopped")
                        return
                    continue
            else:
                if not data:
                    logger.debug("simulator_eof_detected")
                    return
                buffer = data

            line = buffer.decode("utf-8", errors="replace").rstrip()
            buffer = b""

            if not self.__production and line.startswith(SIMULATOR_EOF):
                logger.debug("simulator_eof_detected")
                return

            yield line

            # 1sec delay mimics dsmr behaviour, which transmits every 1sec a telegram
            if not self.__production and line.startswith(TELEGRAM_END):
                time.sleep(self.__simulator_delay)

    def close(self):
        logger.debug("serial_closed")
        self.__tty.close()
