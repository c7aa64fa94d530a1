#!/usr/bin/env python3
"""
Command-line interface for Utterson - static site generator.
"""

import sys
import argparse
from typing import List, Optional

from . import __version__
from .core import Utterson, setup_logging
from .settings import UttersonSettings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Utterson - Static Site Generator')
    parser.add_argument('--source', type=str,
                        help='Source directory containing markdown files')
    parser.add_argument('--output', type=str,
                        help='Output directory for generated site')
    parser.add_argument('--templates', type=str,
                        help='Templates directory')
    parser.add_argument('--template-post', dest='template_post', type=str,
                        help='Template used for markdown documents')
    parser.add_argument('--default-language', dest='default_language', type=str,
                        help='Language of documents without a language suffix')
    parser.add_argument('--thumb-path', dest='thumb_path', type=str,
                        help='Directory for image thumbnails, relative to the output')
    parser.add_argument('--workers', type=int,
                        help='Number of parallel markdown workers')
    parser.add_argument('--show-drafts', dest='show_drafts', action='store_true', default=None,
                        help='Render documents marked as drafts')
    parser.add_argument('--typography', dest='typography_enabled', action='store_true', default=None,
                        help='Enable typographic quotes and dashes by default')
    parser.add_argument('--search-index', dest='search_index', type=str,
                        help='Search index filename, relative to the output')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Handle init command
    if args.init:
        settings_loader = UttersonSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")
        return

    try:
        # Config file first, then INPUT_* environment, then command line
        settings_loader = UttersonSettings()
        settings_loader.load_settings()
        settings_loader.load_environment()

        args_dict = {k: v for k, v in vars(args).items() if v is not None and k != 'init'}
        final_settings = settings_loader.merge_with_args(args_dict)
        config = UttersonSettings.to_config(final_settings)

        setup_logging(final_settings.get('log_dir'))
        if settings_loader.config_file_path:
            print(f"Loaded configuration from: {settings_loader.config_file_path}")

        generator = Utterson(config)
        generator.build()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
