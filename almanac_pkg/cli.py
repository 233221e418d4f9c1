#!/usr/bin/env python3
"""
Command-line interface for Almanac - static blog generator.
"""

import os
import sys
import argparse
import time
import shutil
from typing import List, Optional

from . import __version__
from .core import Almanac, PACKAGE_TEMPLATES
from .settings import AlmanacSettings

SAMPLE_ENTRY = """---
title: Hello, Almanac
date: {date}
tags: [meta]
description: The first entry of a new blog.
---

# Hello!

This entry lives in `blogs/hello.md`. Add more Markdown files to the `blogs/`
directory and run `almanac` again to rebuild the site.

```python
print("hello")
```
"""

SAMPLE_CSS = """body {
    max-width: 48rem;
    margin: 0 auto;
    font-family: sans-serif;
}
"""


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected zero or a positive number, got {value}")
    return number


def create_starter_structure(base_dir: Optional[str] = None) -> None:
    """Create templates, blogs and static directories with starter content."""
    base_dir = base_dir or os.getcwd()

    for directory in ['templates', 'blogs', 'static/css']:
        dir_path = os.path.join(base_dir, directory)
        if os.path.exists(dir_path):
            print(f"Directory already exists: {directory}")
        else:
            os.makedirs(dir_path, exist_ok=True)
            print(f"Created directory: {directory}")

    template_dest = os.path.join(base_dir, 'templates')
    for template_file in sorted(os.listdir(PACKAGE_TEMPLATES)):
        dest_path = os.path.join(template_dest, template_file)
        if os.path.exists(dest_path):
            print(f"Template already exists: templates/{template_file}")
        else:
            shutil.copy2(os.path.join(PACKAGE_TEMPLATES, template_file), dest_path)
            print(f"Created template: templates/{template_file}")

    starter_files = [
        (os.path.join('blogs', 'hello.md'), SAMPLE_ENTRY.format(date=time.strftime('%Y-%m-%d'))),
        (os.path.join('static', 'css', 'style.css'), SAMPLE_CSS),
    ]
    for relative_path, content in starter_files:
        path = os.path.join(base_dir, relative_path)
        if os.path.exists(path):
            print(f"File already exists: {relative_path}")
        else:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
            print(f"Created file: {relative_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='almanac', description='Almanac - Static Blog Generator')
    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-w', '--working-dir', type=str,
                        help='Directory prepended to every other configurable directory')
    parser.add_argument('-o', '--output-dir', type=str,
                        help='Directory where the generated site is written')
    parser.add_argument('-x', '--empty-output-dir', action='store_true',
                        help='Delete everything in the output directory before writing to it')
    parser.add_argument('-t', '--template-dir', type=str,
                        help='Directory containing the site templates')
    parser.add_argument('-b', '--blog-dir', type=str,
                        help='Directory containing the blog entries')
    parser.add_argument('-s', '--static-dir', type=str,
                        help='Directory of static assets copied into the output')
    parser.add_argument('-u', '--url', type=str,
                        help='Site URL used for links in the RSS feed')
    parser.add_argument('-i', '--index-entries', type=non_negative_int,
                        help='Maximum number of entries on the index page')
    parser.add_argument('--feed-entries', type=non_negative_int,
                        help='Maximum number of entries in the RSS feed')
    parser.add_argument('--site-title', type=str, help='Site title for pages and the feed')
    parser.add_argument('--site-description', type=str, help='Site description for pages and the feed')
    parser.add_argument('--minify', action='store_true',
                        help='Write minified copies of CSS and JS assets')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file and starter project')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.init:
        settings_loader = AlmanacSettings(args.working_dir)
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")

        print("\nCreating starter project structure...")
        create_starter_structure(args.working_dir)
        print("\nYour new Almanac blog is ready! Run 'almanac' to build it.")
        return

    settings_loader = AlmanacSettings(args.working_dir)
    settings_loader.load_settings()

    args_dict = {k: v for k, v in vars(args).items() if v is not None and k != 'init'}
    settings = settings_loader.merge_with_args(args_dict)

    working_dir = os.path.expanduser(settings['working_dir'])
    overall_start_time = time.time()

    generator = None
    try:
        generator = Almanac(
            working_dir=working_dir,
            output_dir=settings['output_dir'],
            template_dir=settings['template_dir'],
            blog_dir=settings['blog_dir'],
            static_dir=settings['static_dir'],
            site_url=settings['url'],
            site_title=settings['site_title'],
            site_description=settings['site_description'],
            index_entries=settings['index_entries'],
            feed_entries=settings['feed_entries'],
            empty_output_dir=settings['empty_output_dir'],
            minify=settings['minify'],
        )

        stats = generator.build()

        total_time = time.time() - overall_start_time
        generator.logger.info(f"Site build completed in {total_time:.6f} seconds.")
        generator.logger.info(f"Total entries generated: {stats['entries']}")
        generator.logger.info(f"Total tags: {stats['tags']}")

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if generator is not None:
            generator.cleanup()


if __name__ == '__main__':
    main()
