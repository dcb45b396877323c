"""
Configuration management for Tower Farmer
Handles loading and managing configuration from YAML files and environment variables
"""

import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import yaml
from dotenv import load_dotenv

from ..utils.logger import get_logger
from ..utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_CONFIG_FILE = "config/bot_config.yaml"

SECTIONS = ('adb', 'vision', 'automation', 'upgrades', 'logging')


@dataclass
class ADBConfig:
    """ADB configuration settings"""
    adb_path: Optional[str] = None
    timeout: int = 30
    device_serial: Optional[str] = None
    discovery_retries: int = 5
    discovery_retry_delay: float = 2.0


@dataclass
class VisionConfig:
    """Template matching, color search and OCR settings"""
    templates_dir: str = "assets/templates"
    confidence_threshold: float = 0.8
    tesseract_cmd: Optional[str] = None
    ocr_language: str = 'eng'
    ocr_whitelist: str = "0123456789.$/%abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
    # HSV band of the moving gem (OpenCV hue range is 0-180)
    gem_hsv_lower: Tuple[int, int, int] = (120, 60, 100)
    gem_hsv_upper: Tuple[int, int, int] = (160, 255, 255)
    gem_min_area: float = 2000
    gem_max_area: float = 3000
    orbit_radius: int = 270
    panel_min_area: float = 60000
    panel_min_aspect: float = 1.5
    panel_max_aspect: float = 3.5
    panel_border_thickness: int = 16

    def __post_init__(self):
        self.gem_hsv_lower = tuple(self.gem_hsv_lower)
        self.gem_hsv_upper = tuple(self.gem_hsv_upper)


@dataclass
class AutomationConfig:
    """Main loop settings"""
    poll_interval: float = 0.2
    track_upgrades: bool = True


@dataclass
class UpgradeConfig:
    """Upgrade tracker settings"""
    # (x, y, width, height) of the upgrade panel area on screen
    panel_region: Tuple[int, int, int, int] = (0, 1045, 900, 465)
    refresh_interval: float = 60.0

    def __post_init__(self):
        self.panel_region = tuple(self.panel_region)


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = 'INFO'
    file_enabled: bool = True
    console_enabled: bool = True
    log_file: str = 'tower_farmer.log'
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    detailed_format: bool = False


@dataclass
class BotConfig:
    """Main bot configuration"""
    adb: ADBConfig = field(default_factory=ADBConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    upgrades: UpgradeConfig = field(default_factory=UpgradeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Environment variable -> (section, key, type)
ENV_OVERRIDES = {
    'TOWER_FARMER_ADB_PATH': ('adb', 'adb_path', str),
    'TOWER_FARMER_ADB_TIMEOUT': ('adb', 'timeout', int),
    'TOWER_FARMER_DEVICE': ('adb', 'device_serial', str),
    'TOWER_FARMER_TEMPLATES_DIR': ('vision', 'templates_dir', str),
    'TOWER_FARMER_TESSERACT_CMD': ('vision', 'tesseract_cmd', str),
    'TOWER_FARMER_POLL_INTERVAL': ('automation', 'poll_interval', float),
    'TOWER_FARMER_LOG_LEVEL': ('logging', 'level', str),
}


class ConfigManager:
    """
    Configuration manager for Tower Farmer
    Handles loading, validation, and access to configuration settings
    """

    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE):
        """
        Initialize configuration manager

        Args:
            config_file: Path to the configuration file
        """
        self.config_file = Path(config_file)
        self.config: Optional[BotConfig] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables"""
        config_data = self._get_default_config()

        try:
            if self.config_file.exists():
                logger.info(f"Loading configuration from {self.config_file}")
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = yaml.safe_load(f) or {}
                if not isinstance(file_config, dict):
                    raise ConfigurationError(f"{self.config_file} must contain a mapping")
                config_data = self._merge_configs(config_data, file_config)
            else:
                logger.info("No configuration file found, using defaults")

            config_data = self._apply_environment_overrides(config_data)

            unknown = set(config_data) - set(SECTIONS)
            if unknown:
                raise ConfigurationError(f"Unknown configuration sections: {sorted(unknown)}")

            self.config = BotConfig(
                adb=ADBConfig(**config_data['adb']),
                vision=VisionConfig(**config_data['vision']),
                automation=AutomationConfig(**config_data['automation']),
                upgrades=UpgradeConfig(**config_data['upgrades']),
                logging=LoggingConfig(**config_data['logging']),
            )
        except ConfigurationError:
            raise
        except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
            logger.error(f"Error loading configuration: {e}")
            raise ConfigurationError(f"Failed to load configuration: {e}")

        logger.debug("Configuration loaded successfully")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values"""
        return {section: {} for section in SECTIONS}

    def _merge_configs(self, base: Dict, override: Dict) -> Dict:
        """Recursively merge configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_environment_overrides(self, config_data: Dict) -> Dict:
        """Apply environment variable overrides"""
        for env_name, (section, key, cast) in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                config_data.setdefault(section, {})[key] = cast(value)
        return config_data

    def get_config(self) -> BotConfig:
        """Get the current configuration"""
        if self.config is None:
            raise ConfigurationError("Configuration not loaded")
        return self.config

    def save_config(self) -> None:
        """Save current configuration to file"""
        config_data = asdict(self.get_config())
        # YAML has no tuple type
        config_data['vision']['gem_hsv_lower'] = list(config_data['vision']['gem_hsv_lower'])
        config_data['vision']['gem_hsv_upper'] = list(config_data['vision']['gem_hsv_upper'])
        config_data['upgrades']['panel_region'] = list(config_data['upgrades']['panel_region'])

        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            logger.error(f"Error saving configuration: {e}")
            raise ConfigurationError(f"Failed to save configuration: {e}")

        logger.info(f"Configuration saved to {self.config_file}")

    def reload_config(self) -> None:
        """Force reload configuration from file"""
        logger.info("Force reloading configuration")
        self.config = None
        self._load_config()


# Global configuration manager instance
config_manager = ConfigManager()
