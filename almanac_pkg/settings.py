#!/usr/bin/env python3
"""
Settings loader for Almanac.
Supports configuration from almanac.yml, almanac.yaml or almanac.json files.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional


class AlmanacSettings:
    """Load and manage Almanac configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'working_dir': './',
        'output_dir': 'public',
        'template_dir': 'templates',
        'blog_dir': 'blogs',
        'static_dir': 'static',
        'url': None,
        'site_title': None,
        'site_description': None,
        'index_entries': 3,
        'feed_entries': 10,
        'empty_output_dir': False,
        'minify': False,
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['almanac.yml', 'almanac.yaml', 'almanac.json']

    SAMPLE_YAML = """# Almanac configuration file

# Site information
url: https://example.com
site_title: My Blog
site_description: Notes and articles

# Directories (relative to working_dir)
working_dir: ./
output_dir: public
template_dir: templates
blog_dir: blogs
static_dir: static

# Content settings
index_entries: 3   # entries shown on the home page
feed_entries: 10   # entries in feed.rss

# Build settings
empty_output_dir: false
minify: false
"""

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            try:
                loaded_settings = self._load_config_file(config_file)
                if loaded_settings:
                    # Merge with defaults, giving preference to loaded settings
                    self.settings.update(loaded_settings)
                    print(f"Loaded configuration from: {os.path.relpath(config_file)}")
            except (ValueError, IOError, OSError) as e:
                print(f"Warning: Failed to load config file {config_file}: {e}")

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    loaded = yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    loaded = json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")

        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        return loaded

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        config_path = os.path.join(self.config_dir, f'almanac.{file_format}')

        with open(config_path, 'w', encoding='utf-8') as f:
            if file_format in ['yml', 'yaml']:
                f.write(self.SAMPLE_YAML)
            elif file_format == 'json':
                sample = self.DEFAULT_SETTINGS.copy()
                sample.update({
                    'url': 'https://example.com',
                    'site_title': 'My Blog',
                    'site_description': 'Notes and articles',
                })
                json.dump(sample, f, indent=2)
            else:
                raise ValueError(f"Unsupported config file format: {file_format}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.
        """
        merged = self.settings.copy()

        for key, value in args_dict.items():
            if value is None:
                continue
            # store_true flags only override when actually given
            if value is False and isinstance(self.DEFAULT_SETTINGS.get(key), bool):
                continue
            merged[key] = value

        return merged
