"""Tests for configuration loading, environment overrides and saving"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import yaml

from tower_farmer.utils.config import ConfigManager
from tower_farmer.utils.exceptions import ConfigurationError


class ConfigManagerTest(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.config_file = Path(self.tmpdir) / "config" / "bot_config.yaml"

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def write(self, data):
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(yaml.safe_dump(data), encoding='utf-8')

    def load(self, env=None):
        with mock.patch.dict(os.environ, env or {}, clear=True):
            return ConfigManager(str(self.config_file)).get_config()

    def test_defaults_without_file(self):
        config = self.load()

        self.assertEqual(config.adb.timeout, 30)
        self.assertEqual(config.vision.confidence_threshold, 0.8)
        self.assertEqual(config.vision.orbit_radius, 270)
        self.assertEqual(config.vision.gem_hsv_lower, (120, 60, 100))
        self.assertEqual(config.automation.poll_interval, 0.2)
        self.assertEqual(config.upgrades.panel_region, (0, 1045, 900, 465))
        self.assertEqual(config.upgrades.refresh_interval, 60.0)

    def test_file_values_merge_over_defaults(self):
        self.write({
            'adb': {'device_serial': 'emulator-5556'},
            'vision': {'gem_hsv_lower': [110, 50, 90]},
            'automation': {'track_upgrades': False},
        })

        config = self.load()

        self.assertEqual(config.adb.device_serial, 'emulator-5556')
        self.assertEqual(config.adb.timeout, 30)
        self.assertEqual(config.vision.gem_hsv_lower, (110, 50, 90))
        self.assertFalse(config.automation.track_upgrades)

    def test_environment_overrides_file(self):
        self.write({'adb': {'timeout': 10}, 'logging': {'level': 'INFO'}})

        config = self.load({
            'TOWER_FARMER_ADB_TIMEOUT': '45',
            'TOWER_FARMER_LOG_LEVEL': 'DEBUG',
            'TOWER_FARMER_POLL_INTERVAL': '0.5',
        })

        self.assertEqual(config.adb.timeout, 45)
        self.assertEqual(config.logging.level, 'DEBUG')
        self.assertEqual(config.automation.poll_interval, 0.5)

    def test_unknown_section_is_rejected(self):
        self.write({'gui': {'theme': 'dark'}})

        with self.assertRaises(ConfigurationError):
            self.load()

    def test_unknown_key_is_rejected(self):
        self.write({'adb': {'colour': 'blue'}})

        with self.assertRaises(ConfigurationError):
            self.load()

    def test_non_mapping_file_is_rejected(self):
        self.config_file.parent.mkdir(parents=True)
        self.config_file.write_text("- just\n- a list\n", encoding='utf-8')

        with self.assertRaises(ConfigurationError):
            self.load()

    def test_save_and_reload(self):
        self.write({'vision': {'orbit_radius': 300}})

        with mock.patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(self.config_file))
            manager.get_config().automation.poll_interval = 0.3
            manager.save_config()
            manager.reload_config()
            config = manager.get_config()

        self.assertEqual(config.vision.orbit_radius, 300)
        self.assertEqual(config.automation.poll_interval, 0.3)
        self.assertEqual(config.upgrades.panel_region, (0, 1045, 900, 465))

        saved = yaml.safe_load(self.config_file.read_text(encoding='utf-8'))
        self.assertEqual(saved['upgrades']['panel_region'], [0, 1045, 900, 465])


if __name__ == '__main__':
    unittest.main()
