"""
Example: open a UART session with a Nordic UART device, send a line and print what comes back.

Without an address the first device advertising the UART service is used.
Received data is reported through the observer interface; connection changes
are also published on pypubsub, which this example uses to detect a lost link.
"""
import argparse
import logging
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError

from pubsub import pub

import bleuart

logger = logging.getLogger(__name__)

# Seconds to wait for discovery and for the connect pipeline
DISCOVERY_TIMEOUT_SECONDS = 30
CONNECT_TIMEOUT_SECONDS = 20

disconnected_event = threading.Event()


class PrintingObserver:
    """Print everything the device sends."""

    def __init__(self, uart):
        self.uart = uart

    def connected(self):
        logger.info("UART endpoints resolved on %s", self.uart.address)

    def disconnected(self):
        logger.info("UART link to %s lost", self.uart.address)

    def available(self):
        print(self.uart.read_all_string(), end="", flush=True)


def on_connection_lost(uart):
    logger.info("Connection lost for %s", uart.address)
    disconnected_event.set()


def main():
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Nordic UART echo example.")
    parser.add_argument("address", nargs="?", help="BLE address of the UART device.")
    parser.add_argument("--message", default="hello\n", help="Text to send once connected.")
    args = parser.parse_args()

    pub.subscribe(on_connection_lost, bleuart.TOPIC_DISCONNECTED)

    if args.address:
        uart = bleuart.UART(args.address)
    else:
        logger.info("Scanning for a UART device...")
        discovery = bleuart.UART.find_first()
        try:
            uart = discovery.result(timeout=DISCOVERY_TIMEOUT_SECONDS)
        except FutureTimeoutError:
            discovery.cancel()
            logger.error("No UART device found")
            return

    with uart:
        uart.register(PrintingObserver(uart))
        try:
            uart.connect().result(timeout=CONNECT_TIMEOUT_SECONDS)
        except (bleuart.UARTError, FutureTimeoutError):
            logger.exception("Connection failed")
            return

        uart.write(args.message)
        try:
            disconnected_event.wait()
        except KeyboardInterrupt:
            logger.info("Exiting...")


if __name__ == "__main__":
    main()
