"""Test configuration and fixtures for Almanac tests."""

import os
import sys
import pytest
import tempfile
import shutil
from pathlib import Path
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from almanac_pkg.entry import Entry


def make_entry(created, title=None, tags=(), **kwargs):
    """Build an Entry from a 'YYYY-MM-DD' string or a datetime."""
    if isinstance(created, str):
        created = datetime.strptime(created, '%Y-%m-%d')
    title = title or created.strftime('%Y-%m-%d')
    kwargs.setdefault('url', f"{created:%Y-%m-%d-%H%M%S}-{title.replace(' ', '-').lower()}.html")
    return Entry(created=created, title=title, tags=tuple(tags), **kwargs)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def scenario_entries():
    """The four-entry corpus used across the aggregation tests, in input order."""
    return [
        make_entry('2023-01-05', tags=['go']),
        make_entry('2023-01-20', tags=['go', 'web']),
        make_entry('2023-03-01', tags=['web']),
        make_entry('2022-12-15'),
    ]


@pytest.fixture
def blog_dir(temp_dir):
    """Create a blog directory with a few entries."""
    blog_dir = Path(temp_dir) / 'blogs'
    blog_dir.mkdir()

    (blog_dir / 'first.md').write_text("""---
title: First Steps
date: 2022-12-15
tags: []
description: Where it all began.
---

Hello world.
""")

    (blog_dir / 'go-intro.md').write_text("""---
title: Go Intro
date: 2023-01-05
tags: [go]
author: Jane Smith
---

Some *Go*.

```go
package main
```
""")

    (blog_dir / 'go-web.md').write_text("""---
title: Go on the Web
date: 2023-01-20
updated: 2023-02-02
tags: go, web
---

Serving pages.
""")

    (blog_dir / 'web.md').write_text("""---
title: Web Things
date: 2023-03-01
tags: [web]
slug: web-things
languages: [css]
---

Stylesheets & more.
""")

    return str(blog_dir)


@pytest.fixture
def templates_dir(temp_dir):
    """Create a minimal template set."""
    templates_dir = Path(temp_dir) / 'templates'
    templates_dir.mkdir()

    (templates_dir / 'site.html').write_text(
        "<html><head><title>{{ title }}</title></head>"
        "<body class=\"{% if at_home %}home{% elif at_tags %}tags{% elif at_archives %}archives"
        "{% elif at_about %}about{% else %}entry{% endif %}\">"
        "{% for l in languages %}<lang>{{ l }}</lang>{% endfor %}{{ content }}</body></html>"
    )
    (templates_dir / 'entry.html').write_text(
        "<h1>{{ entry.title }}</h1><time>{{ entry.created|format_date }}</time>{{ content }}"
    )
    (templates_dir / 'entries.html').write_text(
        "{% for entry in entries %}<article>{{ entry.title }}</article>{% endfor %}"
    )
    (templates_dir / 'archive.html').write_text(
        "{% for year in years %}<year>{{ year.label }}"
        "{% for month in year.months %}<month>{{ month.name }}"
        "{% for entry in month.entries %}<e>{{ entry.title }}</e>{% endfor %}</month>"
        "{% endfor %}</year>{% endfor %}"
    )
    (templates_dir / 'tags.html').write_text(
        "{% for tag in tags %}<tag>{{ tag.name }}"
        "{% for entry in tag.entries %}<e>{{ entry.title }}</e>{% endfor %}</tag>{% endfor %}"
    )
    (templates_dir / 'about.html').write_text("<p>About {{ cdate|format_date }}</p>")

    return str(templates_dir)


@pytest.fixture
def site_dir(temp_dir, blog_dir, templates_dir):
    """A working directory with blogs, templates and static assets."""
    static_dir = Path(temp_dir) / 'static' / 'css'
    static_dir.mkdir(parents=True)
    (static_dir / 'style.css').write_text("body {\n    color: #000000;\n}\n")
    return temp_dir


@pytest.fixture
def entry_factory():
    return make_entry
