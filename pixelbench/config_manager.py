"""Configuration persistence manager for the benchmark harness.

This module handles loading and saving of benchmark settings to/from JSON files.
"""

import json
from dataclasses import asdict, fields
from pathlib import Path
from typing import Optional, Tuple

from .models import CONFIG_FILE, BenchmarkSettings, RunSettings


class ConfigManager:
    """Handles loading and saving of benchmark settings."""

    def __init__(self, config_path: Path = CONFIG_FILE):
        """Initialize config manager.

        Args:
            config_path: Path to configuration file (defaults to ~/.pixelbench_config.json)
        """
        self.config_path = Path(config_path)

    def load(self) -> BenchmarkSettings:
        """Load settings from file, returning defaults if not found.

        Returns:
            BenchmarkSettings with loaded or default values
        """
        settings = BenchmarkSettings()

        try:
            if self.config_path.exists():
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                    # Update settings with loaded values (fallback to defaults)
                    settings.max_history_items = data.get(
                        "max_history_items", settings.max_history_items
                    )
                    settings.pixel_diff_threshold = data.get(
                        "pixel_diff_threshold", settings.pixel_diff_threshold
                    )
                    settings.delay_between_runs = data.get(
                        "delay_between_runs", settings.delay_between_runs
                    )
                    for name, values in data.get("runs", {}).items():
                        settings.runs[name] = self._load_run_settings(values)
                print(f"✓ Loaded configuration from {self.config_path}")
        except Exception as e:
            print(f"Warning: Could not load config file: {e}")
            settings = BenchmarkSettings()

        return settings

    def save(self, settings: BenchmarkSettings) -> Tuple[bool, Optional[str]]:
        """Save settings to file.

        Args:
            settings: BenchmarkSettings to save

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        try:
            with open(self.config_path, "w") as f:
                json.dump(asdict(settings), f, indent=2)
            return True, None
        except Exception as e:
            return False, str(e)

    @staticmethod
    def _load_run_settings(values: dict) -> RunSettings:
        run_settings = RunSettings()
        for f in fields(RunSettings):
            setattr(run_settings, f.name, values.get(f.name, getattr(run_settings, f.name)))
        return run_settings
