import os
import shutil
import logging
import re
import html
from datetime import datetime, timezone
from email.utils import formatdate
from xml.sax.saxutils import escape

import csscompressor
import rjsmin
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, TemplateSyntaxError

from .entry import EntryError
from .aggregate import build_archive, build_tag_index, recent_entries, sort_by_date
from .parser import EntryParser

PACKAGE_TEMPLATES = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')

# Templates every site must provide; rss.xml is optional.
REQUIRED_TEMPLATES = ['about.html', 'archive.html', 'entries.html', 'entry.html', 'site.html', 'tags.html']
FEED_TEMPLATE = 'rss.xml'
FEED_FILE = 'feed.rss'
# Output names owned by the generator itself; entries may not claim them.
RESERVED_PAGES = ['about.html', 'archives.html', 'index.html', 'tags.html', FEED_FILE]


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Starting site build",
            "Site build completed in",
            "Total entries generated:",
            "Total tags:",
            "Building index page",
            "Building archive page",
            "Building tags page",
            "Building about page",
            "Generating RSS feed",
            "Skipping RSS feed",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


def format_date(value, fmt='%Y-%m-%d'):
    """Jinja filter: format a datetime for display."""
    if value is None:
        return ''
    return value.strftime(fmt)


def rfc822(value):
    """Jinja filter: RFC 822 date for feeds. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return formatdate(value.timestamp(), usegmt=True)


def strip_tags(text):
    plain = re.sub(r'<[^>]+>', '', html.unescape(str(text)))
    return re.sub(r'\s+', ' ', plain).strip()


class Almanac:
    def __init__(self, working_dir='./', output_dir='public', template_dir='templates', blog_dir='blogs',
                 static_dir='static', site_url=None, site_title=None, site_description=None,
                 index_entries=3, feed_entries=10, empty_output_dir=False, minify=False, log_dir=None):
        self.working_dir = working_dir
        self.output_dir = os.path.join(working_dir, output_dir)
        self.template_dir = os.path.join(working_dir, template_dir)
        self.blog_dir = os.path.join(working_dir, blog_dir)
        self.static_dir = os.path.join(working_dir, static_dir)
        self.site_url = site_url.rstrip('/') if site_url else None
        self.site_title = site_title
        self.site_description = site_description
        self.index_entries = index_entries
        self.feed_entries = feed_entries
        self.empty_output_dir = empty_output_dir
        self.minify = minify
        self.log_dir = log_dir or os.path.join(working_dir, 'logs')

        self.entries_generated = 0
        self.pages_generated = 0

        # Filled in by build()
        self.entries = []
        self.entries_by_date = []
        self.archive = None
        self.tag_index = None

        self.env = None
        self.parser = EntryParser(self.blog_dir)
        self.setup_logging()

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Almanac')
        self.logger.setLevel(logging.DEBUG)

        # Each generator logs to its own log_dir, so drop handlers left by an earlier one
        self.cleanup()

        # Console handler with filter
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.addFilter(InfoFilter())
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        self.logger.addHandler(console_handler)

        # File handler for all logs
        os.makedirs(self.log_dir, exist_ok=True)
        log_filename = datetime.now().strftime('almanac_%Y-%m-%d_%H-%M-%S.log')
        file_handler = logging.FileHandler(os.path.join(self.log_dir, log_filename))
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        self.logger.addHandler(file_handler)

    def cleanup(self):
        """Detach and close the handlers on the Almanac logger."""
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

    def load_templates(self):
        """Set up the Jinja2 environment and check that every required template exists."""
        template_dir = self.template_dir
        if not os.path.isdir(template_dir):
            self.logger.warning(f"Template directory {template_dir} not found, using packaged templates")
            template_dir = PACKAGE_TEMPLATES

        self.env = Environment(loader=FileSystemLoader(template_dir))
        self.env.filters['format_date'] = format_date
        self.env.filters['rfc822'] = rfc822
        self.env.filters['strip_tags'] = strip_tags

        for name in REQUIRED_TEMPLATES:
            try:
                self.env.get_template(name)
            except TemplateNotFound:
                self.logger.error(f"Missing template {name} in {template_dir}")
                raise
            except TemplateSyntaxError as e:
                self.logger.error(f"Template error in {name}: {e}")
                raise
        self.logger.debug(f"Loaded templates from {template_dir}")
        return self.env

    def has_template(self, name):
        try:
            self.env.get_template(name)
            return True
        except TemplateNotFound:
            return False

    def prepare_output_dir(self):
        """Create the output directory, emptying it first if requested."""
        if self.empty_output_dir and os.path.exists(self.output_dir):
            shutil.rmtree(self.output_dir)
            self.logger.debug(f"Removed existing output directory {self.output_dir}")
        os.makedirs(self.output_dir, exist_ok=True)

    def copy_static(self):
        """Copy the static directory's contents into the output directory."""
        if not os.path.isdir(self.static_dir):
            self.logger.debug(f"No static directory at {self.static_dir}")
            return
        try:
            shutil.copytree(self.static_dir, self.output_dir, dirs_exist_ok=True)
            self.logger.info(f"Copied static files from {self.static_dir}")
        except (IOError, OSError, shutil.Error) as e:
            self.logger.error(f"Failed to copy static files from {self.static_dir}: {e}")
            raise

    def minify_assets(self):
        """Write .min.css / .min.js copies of every stylesheet and script in the output."""
        for root, _dirs, files in os.walk(self.output_dir):
            for file in files:
                path = os.path.join(root, file)
                if file.endswith('.css') and not file.endswith('.min.css'):
                    compress, minified_path = csscompressor.compress, path[:-4] + '.min.css'
                elif file.endswith('.js') and not file.endswith('.min.js'):
                    compress, minified_path = rjsmin.jsmin, path[:-3] + '.min.js'
                else:
                    continue
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        source = f.read()
                    with open(minified_path, 'w', encoding='utf-8') as f:
                        f.write(compress(source))
                    self.logger.debug(f"Minified {file}")
                except (IOError, OSError, UnicodeDecodeError) as e:
                    self.logger.error(f"Failed to minify {path}: {e}")

    def load_entries(self):
        self.entries = self.parser.load_entries()
        self.logger.debug(f"Loaded {len(self.entries)} entries from {self.blog_dir}")
        return self.entries

    def check_urls(self):
        """Reject entries whose output file would clash with another page."""
        owners = {name: 'the generator' for name in RESERVED_PAGES}
        for entry in self.entries:
            source = entry.source or entry.title
            if entry.url in owners:
                raise EntryError(f"{source}: output file {entry.url} is already used by {owners[entry.url]}")
            owners[entry.url] = source

    def aggregate(self):
        """Build the date, archive and tag views used by every page."""
        self.entries_by_date = sort_by_date(self.entries)
        self.archive = build_archive(self.entries)
        # Fed newest-first so each tag lists its entries newest-first too.
        self.tag_index = build_tag_index(self.entries_by_date)

    def write_file(self, filename, content):
        path = os.path.join(self.output_dir, filename)
        output_root = os.path.join(os.path.abspath(self.output_dir), '')
        if not os.path.abspath(path).startswith(output_root):
            raise ValueError(f"Path traversal attempt detected: {filename}")
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
        except (IOError, OSError) as e:
            self.logger.error(f"Failed to write {path}: {e}")
            raise
        self.logger.debug(f"Generated {path}")
        return path

    def render_template(self, template_name, **context):
        return self.env.get_template(template_name).render(**context)

    def render_page(self, filename, title, content, description='', author='', languages=(),
                    at_home=False, at_tags=False, at_archives=False, at_about=False):
        """Wrap page content in site.html and write it to the output directory."""
        page = self.render_template(
            'site.html',
            title=title,
            description=description or self.site_description or '',
            author=author,
            content=content,
            languages=list(languages),
            at_home=at_home,
            at_tags=at_tags,
            at_archives=at_archives,
            at_about=at_about,
            site_title=self.site_title,
            site_url=self.site_url,
            feed_file=FEED_FILE,
        )
        self.pages_generated += 1
        return self.write_file(filename, page)

    def build_entry_pages(self):
        for entry in self.entries_by_date:
            inner = self.render_template('entry.html', entry=entry, content=entry.content)
            self.render_page(entry.url, entry.title, inner, description=entry.description,
                             author=entry.author, languages=entry.languages)
            self.entries_generated += 1

    def build_about_page(self):
        inner = self.render_template('about.html', cdate=datetime.now())
        self.render_page('about.html', 'About', inner, at_about=True)
        self.logger.info("Building about page")

    def build_tags_page(self):
        inner = self.render_template('tags.html', tags=list(self.tag_index), cdate=datetime.now())
        self.render_page('tags.html', 'Tags', inner, at_tags=True)
        self.logger.info("Building tags page")

    def build_archive_page(self):
        inner = self.render_template('archive.html', years=list(self.archive), cdate=datetime.now())
        self.render_page('archives.html', 'Archives', inner, at_archives=True)
        self.logger.info("Building archive page")

    def build_index_page(self):
        entries = recent_entries(self.entries_by_date, self.index_entries)
        languages = list(dict.fromkeys(lang for entry in entries for lang in entry.languages))
        inner = self.render_template('entries.html', entries=entries)
        self.render_page('index.html', 'Index', inner, languages=languages, at_home=True)
        self.logger.info("Building index page")

    def generate_rss_feed(self):
        """Write feed.rss from the newest entries. Failures are logged, not fatal."""
        if not self.site_url:
            self.logger.info("Skipping RSS feed (no site_url).")
            return False

        entries = recent_entries(self.entries_by_date, self.feed_entries)
        title = self.site_title or self.site_url
        description = self.site_description or f"Latest entries from {title}"

        try:
            if self.has_template(FEED_TEMPLATE):
                rss_content = self.render_template(
                    FEED_TEMPLATE,
                    entries=entries,
                    site_url=self.site_url,
                    site_title=title,
                    site_description=description,
                    build_date=formatdate(usegmt=True),
                )
            else:
                rss_content = self._default_rss(entries, title, description)
            self.write_file(FEED_FILE, rss_content)
        except (IOError, OSError, TemplateSyntaxError) as e:
            self.logger.error(f"Failed to generate RSS feed, no feed will be available: {e}")
            return False

        self.logger.info("Generating RSS feed")
        return True

    def _default_rss(self, entries, title, description):
        rss_content = f'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>{escape(title)}</title>
<link>{escape(self.site_url)}/</link>
<description>{escape(description)}</description>
<lastBuildDate>{formatdate(usegmt=True)}</lastBuildDate>
'''
        for entry in entries:
            link = f"{self.site_url}/{entry.url}"
            summary = entry.description or strip_tags(entry.content)
            rss_content += f'''
<item>
<title>{escape(entry.title)}</title>
<link>{escape(link)}</link>
<description>{escape(summary)}</description>
<pubDate>{rfc822(entry.created)}</pubDate>
<guid>{escape(link)}</guid>
</item>'''

        rss_content += '''
</channel>
</rss>
'''
        return rss_content

    def build(self):
        """Main build process."""
        self.logger.info("Starting site build...")
        self.entries_generated = 0
        self.pages_generated = 0

        self.load_templates()
        self.prepare_output_dir()
        self.copy_static()
        if self.minify:
            self.minify_assets()

        self.load_entries()
        self.check_urls()
        self.aggregate()

        self.build_entry_pages()
        self.build_about_page()
        self.build_tags_page()
        self.build_archive_page()
        self.build_index_page()
        self.generate_rss_feed()

        return {
            'entries': self.entries_generated,
            'pages': self.pages_generated,
            'tags': len(self.tag_index),
            'years': len(self.archive),
        }
