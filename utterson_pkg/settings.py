#!/usr/bin/env python3
"""
Settings loader for Utterson static site generator.
Supports configuration from utterson.yml, utterson.yaml or utterson.json
files, INPUT_* environment variables and command-line arguments.
"""

import os
import json
import yaml
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional

from .models import parse_bool


@dataclass(frozen=True)
class BuildConfig:
    """Resolved settings handed to every build component."""

    title: str = ''
    short_description: str = ''
    author: str = ''
    source_dir: str = '.'
    output_dir: str = 'output'
    templates_dir: str = 'templates'
    template_post: str = 'post.html'
    allowed_extensions: List[str] = field(default_factory=lambda: ['.jpeg', '.jpg', '.png', '.mp4', '.pdf'])
    default_language: str = 'en'
    typography_enabled: bool = False
    comments_enabled: bool = True
    comments_site_id: str = ''
    show_social_sharing_buttons: bool = False
    show_drafts: bool = False
    thumb_path: str = 'thumb'
    thumb_max_width: int = 140
    thumb_max_height: int = 140
    image_timeout: int = 30
    workers: int = 4
    image_workers: int = 1
    search_index: Optional[str] = 'search_index.json'


class UttersonSettings:
    """Load and manage Utterson configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'title': '',
        'short_description': '',
        'author': '',
        'source': '.',
        'output': 'output',
        'templates': 'templates',
        'template_post': 'post.html',
        'allowed_extensions': ['.jpeg', '.jpg', '.png', '.mp4', '.pdf'],
        'default_language': 'en',
        'typography_enabled': False,
        'comments_enabled': True,
        'comments_site_id': '',
        'show_social_sharing_buttons': False,
        'show_drafts': False,
        'thumb_path': 'thumb',
        'thumb_max_width': 140,
        'thumb_max_height': 140,
        'image_timeout': 30,
        'workers': None,
        'image_workers': 1,
        'search_index': 'search_index.json',
        'log_dir': 'logs',
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['utterson.yml', 'utterson.yaml', 'utterson.json']

    # Environment variables recognised by the build (INPUT_<KEY>)
    ENV_PREFIX = 'INPUT_'
    ENV_ALIASES = {
        'SOURCE_DIRECTORY': 'source',
        'OUTPUT_DIRECTORY': 'output',
        'TEMPLATES_DIRECTORY': 'templates',
        'ALLOWED_FILE_EXTENSIONS': 'allowed_extensions',
    }

    BOOL_KEYS = {'typography_enabled', 'comments_enabled', 'show_social_sharing_buttons', 'show_drafts'}
    INT_KEYS = {'thumb_max_width', 'thumb_max_height', 'image_timeout', 'workers', 'image_workers'}

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
            loaded_settings = self._load_config_file(config_file)
            if loaded_settings:
                # Merge with defaults, giving preference to loaded settings
                self.settings.update(self._normalize(loaded_settings))

        return self.settings.copy()

    def load_environment(self, environ: Mapping[str, str] = None) -> Dict[str, Any]:
        """
        Apply INPUT_* environment variables on top of the loaded settings.

        Args:
            environ: Environment mapping, defaults to os.environ

        Returns:
            Dictionary of configuration settings
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name, value in environ.items():
            if not name.startswith(self.ENV_PREFIX):
                continue
            suffix = name[len(self.ENV_PREFIX):]
            key = self.ENV_ALIASES.get(suffix, suffix.lower())
            if key in self.DEFAULT_SETTINGS:
                overrides[key] = value
        self.settings.update(self._normalize(overrides))
        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
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
                    data = yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    data = json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        return data

    def _normalize(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Coerce string values coming from files or the environment."""
        normalized = {}
        for key, value in values.items():
            if key in self.BOOL_KEYS and isinstance(value, str):
                value = parse_bool(value)
            elif key in self.INT_KEYS and isinstance(value, str):
                value = int(value) if value.strip() else None
            elif key == 'allowed_extensions' and isinstance(value, str):
                value = [ext.strip() for ext in value.split(',') if ext.strip()]
            normalized[key] = value
        return normalized

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        sample_config = {
            'title': 'My Blog',
            'short_description': 'Notes and articles',
            'author': 'Site Author',
            'source': '.',
            'output': 'output',
            'templates': 'templates',
            'default_language': 'en',
            'thumb_path': 'thumb',
            'comments_enabled': True,
            'typography_enabled': False,
        }

        filename = f'utterson.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        with open(config_path, 'w', encoding='utf-8') as f:
            if file_format in ['yml', 'yaml']:
                f.write("# Utterson Configuration File\n\n")
                f.write("# Site information\n")
                f.write("title: My Blog\n")
                f.write("short_description: Notes and articles\n")
                f.write("author: Site Author\n\n")
                f.write("# Build settings\n")
                f.write("source: .\n")
                f.write("output: output\n")
                f.write("templates: templates\n")
                f.write("default_language: en\n\n")
                f.write("# Images\n")
                f.write("thumb_path: thumb\n\n")
                f.write("# Per-document defaults\n")
                f.write("comments_enabled: true\n")
                f.write("typography_enabled: false\n")
            elif file_format == 'json':
                json.dump(sample_config, f, indent=2)
            else:
                raise ValueError(f"Unsupported config file format: {file_format}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is not None:
                merged[key] = value

        return self._normalize(merged)

    @staticmethod
    def to_config(settings: Dict[str, Any]) -> BuildConfig:
        """Build the immutable configuration passed to the build."""
        output_dir = os.path.expanduser(settings['output'])
        default_language = (settings.get('default_language') or 'en').lower()
        return BuildConfig(
            title=settings.get('title') or '',
            short_description=settings.get('short_description') or '',
            author=settings.get('author') or '',
            source_dir=settings['source'],
            output_dir=output_dir,
            templates_dir=settings['templates'],
            template_post=settings['template_post'],
            allowed_extensions=list(settings['allowed_extensions'] or []),
            default_language=default_language,
            typography_enabled=bool(settings['typography_enabled']),
            comments_enabled=bool(settings['comments_enabled']),
            comments_site_id=settings.get('comments_site_id') or '',
            show_social_sharing_buttons=bool(settings['show_social_sharing_buttons']),
            show_drafts=bool(settings['show_drafts']),
            thumb_path=settings['thumb_path'],
            thumb_max_width=int(settings['thumb_max_width']),
            thumb_max_height=int(settings['thumb_max_height']),
            image_timeout=int(settings['image_timeout']),
            workers=int(settings.get('workers') or os.cpu_count() or 1),
            image_workers=int(settings.get('image_workers') or 1),
            search_index=settings.get('search_index') or None,
        )
