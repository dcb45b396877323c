"""
Main entry point for Tower Farmer
Provides command-line interface and bot initialization
"""

import sys
import argparse

from tower_farmer import __version__
from tower_farmer.core.adb_manager import ADBManager
from tower_farmer.core.device_manager import DeviceManager
from tower_farmer.modules.game_automation import GameAutomation
from tower_farmer.utils.cancellation import CancellationToken
from tower_farmer.utils.config import ConfigManager, DEFAULT_CONFIG_FILE
from tower_farmer.utils.exceptions import BotError
from tower_farmer.utils.game_resources import GameResources
from tower_farmer.utils.logger import get_logger, configure_logging

logger = get_logger(__name__)


class TowerFarmerBot:
    """Main bot class that wires the device, the vision assets and the controller"""

    def __init__(self, config_manager: ConfigManager):
        self.config_manager = config_manager
        self.config = config_manager.get_config()
        self.automation = None
        self.token = CancellationToken()

    def initialize(self, device_id: str = None) -> None:
        """
        Find the device and check the template assets

        Raises:
            DeviceNotFoundError: if no device shows up after the configured retries
            TemplateNotFoundError: if any template image is missing
        """
        logger.info("Initializing Tower Farmer...")

        GameResources(self.config.vision.templates_dir).validate()

        adb_config = self.config.adb
        adb = ADBManager(timeout=adb_config.timeout, adb_path=adb_config.adb_path)
        device_manager = DeviceManager(
            adb,
            retries=adb_config.discovery_retries,
            retry_delay=adb_config.discovery_retry_delay,
        )
        adb.device_id = device_manager.wait_for_device(device_id or adb_config.device_serial)
        logger.info(f"Using device {adb.device_id}")

        self.automation = GameAutomation(adb, self.config)

    def run(self) -> None:
        self.automation.run(self.token)

    def stop(self) -> None:
        # run() stops the controller on its way out
        self.token.cancel()


def main() -> int:
    """Main function"""
    parser = argparse.ArgumentParser(description="Tower Farmer - screen-driven game automation over ADB")
    parser.add_argument('--device', '-d', help='Device serial to automate')
    parser.add_argument('--config', '-c', default=DEFAULT_CONFIG_FILE, help='Configuration file path')
    parser.add_argument('--log-level', help='Override the configured log level')
    parser.add_argument('--init-config', action='store_true',
                        help='Write the effective configuration to the config file and exit')
    parser.add_argument('--version', action='version', version=f'Tower Farmer v{__version__}')

    args = parser.parse_args()

    bot = None
    try:
        config_manager = ConfigManager(args.config)
        config = config_manager.get_config()
        if args.log_level:
            config.logging.level = args.log_level
        configure_logging(config.logging)

        if args.init_config:
            config_manager.save_config()
            return 0

        bot = TowerFarmerBot(config_manager)
        bot.initialize(args.device)

        logger.info("Press Ctrl+C to stop the bot")
        bot.run()

    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except BotError as e:
        logger.error(f"Bot error: {e}")
        return 1
    except Exception:
        logger.exception("Unexpected error occurred")
        return 1
    finally:
        if bot:
            bot.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
