"""
wacore Host Entry Point

Runs one client until interrupted:
- Loads and validates the TOML configuration
- Logs the QR string or pairing code for the operator
- Reconnects per the configured policy; exits when it gives up
- SIGINT / SIGTERM disconnect cleanly
"""

import sys
import time
import signal
import logging
import argparse
import threading
from pathlib import Path

from . import __version__
from .auth.base import ValidationError
from .client import WhatsAppClient
from .config import Config, DEFAULT_CONFIG_PATH
from .events import Events
from .net.manager import ConnectionError


logger = logging.getLogger("wacore")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="WhatsApp Web protocol client")
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Configuration file path",
    )
    parser.add_argument(
        "--pair",
        metavar="PHONE",
        help="Link with a pairing code for this phone number instead of a QR code",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"wacore {__version__}",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # Load configuration
    try:
        config = Config.load(args.config)
        if args.pair:
            config.auth.pairing_code = True
            config.auth.phone_number = args.pair
        config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logging.getLogger().setLevel(logging.DEBUG if args.verbose else config.log_level)

    client = WhatsAppClient(config)
    stopped = threading.Event()

    def on_qr(qr: str) -> None:
        logger.info(f"Scan this QR string with WhatsApp: {qr}")

    def on_pairing_code(payload: dict) -> None:
        logger.info(f"Enter pairing code on your phone: {payload['code']}")

    def on_auth_success(payload: dict) -> None:
        logger.info(f"Logged in as {payload['user']['id']}")

    def on_auth_failure(payload: dict) -> None:
        logger.error(f"Authentication failed: {payload['error']}")

    def on_gave_up(payload=None) -> None:
        logger.error("Connection failed permanently")
        stopped.set()

    client.on(Events.QR, on_qr)
    client.on(Events.PAIRING_CODE, on_pairing_code)
    client.on(Events.AUTH_SUCCESS, on_auth_success)
    client.on(Events.AUTH_FAILURE, on_auth_failure)
    client.on(Events.CONNECTION_FAILED, on_gave_up)
    client.on(Events.LOGOUT, lambda payload=None: stopped.set())

    # Signal handlers
    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}")
        stopped.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        client.connect()
    except ConnectionError as e:
        logger.warning(f"{e}; retrying in the background")
    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        sys.exit(1)

    try:
        # Wait for shutdown
        while not stopped.is_set():
            time.sleep(1)
    finally:
        client.shutdown()

    logger.info(f"Stopped ({client.status()['state']})")


if __name__ == "__main__":
    main()
