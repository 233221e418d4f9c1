import os
import re
import logging
from datetime import datetime, date

import mistune
import yaml

from .entry import Entry, EntryError, to_naive_utc

DATE_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M', '%Y-%m-%d', '%b %d, %Y', '%B %d, %Y']

# Opening and closing fences must sit on lines of their own
FRONT_MATTER = re.compile(r'\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?$', re.DOTALL | re.MULTILINE)


class EntryParser:
    """Turn Markdown files with YAML front matter into Entry objects."""

    def __init__(self, blog_dir):
        self.blog_dir = blog_dir
        self.logger = logging.getLogger('Almanac.parser')
        self._languages = []
        self.markdown_parser = self.create_markdown_parser()

    def create_markdown_parser(self):
        """Create a Mistune markdown parser that records fenced code languages."""
        languages = self._languages

        class CustomRenderer(mistune.HTMLRenderer):
            def __init__(self):
                super().__init__(escape=False)

            def block_code(self, code, info=None):
                escaped_code = mistune.escape(code)
                lang = info.split()[0] if info and info.strip() else None
                if lang:
                    languages.append(lang)
                    return '<pre><code class="language-{}">{}</code></pre>\n'.format(mistune.escape(lang), escaped_code)
                return '<pre><code>{}</code></pre>\n'.format(escaped_code)

        return mistune.create_markdown(
            renderer=CustomRenderer(),
            plugins=['table', 'task_lists', 'strikethrough']
        )

    def render_markdown(self, text):
        """Render markdown to HTML, returning (html, code_languages)."""
        del self._languages[:]
        html = self.markdown_parser(text)
        return html, list(self._languages)

    def get_markdown_files(self):
        """Sorted list of markdown files in the blog directory."""
        if not os.path.isdir(self.blog_dir):
            self.logger.warning(f"Blog directory not found: {self.blog_dir}")
            return []
        return sorted(
            os.path.join(self.blog_dir, name)
            for name in os.listdir(self.blog_dir)
            if name.endswith('.md')
        )

    def parse_markdown_with_metadata(self, filepath):
        """Split a markdown file into its YAML front matter and body."""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()

        match = FRONT_MATTER.match(content)
        if not match:
            raise EntryError(f"{filepath}: missing YAML front matter")

        try:
            metadata = yaml.safe_load(match.group(1)) or {}
        except yaml.YAMLError as e:
            raise EntryError(f"{filepath}: invalid YAML front matter: {e}")
        if not isinstance(metadata, dict):
            raise EntryError(f"{filepath}: front matter must be a mapping")

        return metadata, content[match.end():].strip()

    def parse_date(self, value):
        """Parse a front matter date. Returns None if it cannot be read."""
        if isinstance(value, datetime):
            return to_naive_utc(value)
        elif isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        elif isinstance(value, str):
            for fmt in DATE_FORMATS:
                try:
                    return datetime.strptime(value.strip(), fmt)
                except ValueError:
                    continue
        return None

    def parse_tags(self, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(',')
        return [str(tag).strip() for tag in value if str(tag).strip()]

    def parse_slug(self, value, filepath):
        """
        Slug for the entry's output file, from front matter or the file name.

        Entries are written flat into the output root, so a slug may not
        contain path separators or be a relative path component.
        """
        if value is None or value == '':
            return os.path.splitext(os.path.basename(filepath))[0]
        slug = str(value).strip()
        if not slug or slug.startswith('.') or any(sep in slug for sep in ('/', '\\')):
            raise EntryError(f"{filepath}: invalid slug {value!r}")
        return slug

    def parse(self, filepath):
        """Parse a single markdown file into an Entry."""
        metadata, body = self.parse_markdown_with_metadata(filepath)

        created = self.parse_date(metadata.get('date'))
        if created is None:
            raise EntryError(f"{filepath}: missing or invalid date {metadata.get('date')!r}")

        updated = None
        if metadata.get('updated') is not None:
            updated = self.parse_date(metadata['updated'])
            if updated is None:
                raise EntryError(f"{filepath}: invalid updated date {metadata['updated']!r}")

        if not str(metadata.get('title') or '').strip():
            raise EntryError(f"{filepath}: missing title")

        slug = self.parse_slug(metadata.get('slug'), filepath)
        html, code_languages = self.render_markdown(body)

        return Entry(
            created=created,
            updated=updated,
            title=str(metadata.get('title') or ''),
            url=f"{slug}.html",
            tags=tuple(self.parse_tags(metadata.get('tags'))),
            description=str(metadata.get('description') or ''),
            author=str(metadata.get('author') or ''),
            languages=tuple(self.parse_tags(metadata.get('languages')) + code_languages),
            content=html,
            source=filepath,
        )

    def load_entries(self):
        """Parse every markdown file in the blog directory, failing on the first bad one."""
        entries = []
        for filepath in self.get_markdown_files():
            try:
                entries.append(self.parse(filepath))
            except EntryError as e:
                self.logger.error(f"Rejected entry: {e}")
                raise
            except (IOError, OSError) as e:
                self.logger.error(f"Failed to read entry {filepath}: {e}")
                raise
            self.logger.debug(f"Parsed entry: {filepath}")
        return entries
