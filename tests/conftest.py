"""Test configuration and fixtures for Utterson tests."""

import pytest
import tempfile
import shutil
import io
import os
import sys
from pathlib import Path
from unittest.mock import Mock
from PIL import Image

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from utterson_pkg.settings import BuildConfig  # noqa: E402


POST_TEMPLATE = """{{ current.title }}|{{ current.language }}|{% if prev %}{{ prev.path }}{% endif %}|{% if next %}{{ next.path }}{% endif %}|{% for v in language_variations %}{{ v.language }}{% endfor %}
{{ current.body }}"""

INDEX_TEMPLATE = """{% for v in language_variations %}{{ v.language }},{% endfor %}
{{ i18n('greeting', current.language) }}
{% for p in pages %}{{ p.path }};{% endfor %}"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def sample_image_data():
    """PNG image, 400x200 pixels."""
    img = Image.new('RGB', (400, 200), color='red')
    img_bytes = io.BytesIO()
    img.save(img_bytes, format='PNG')
    return img_bytes.getvalue()


@pytest.fixture
def mock_templates_dir(temp_dir):
    """Create a templates directory with a post template and an index pair."""
    templates_dir = Path(temp_dir) / 'templates'
    templates_dir.mkdir()
    (templates_dir / 'post.html').write_text(POST_TEMPLATE, encoding='utf-8')
    (templates_dir / 'index.html').write_text(INDEX_TEMPLATE, encoding='utf-8')
    (templates_dir / 'index_ru.html').write_text(INDEX_TEMPLATE, encoding='utf-8')
    (templates_dir / '_partial.html').write_text('partial', encoding='utf-8')
    return str(templates_dir)


@pytest.fixture
def mock_source_dir(temp_dir, sample_image_data):
    """Create a source tree with posts, translations, assets and bad files."""
    source_dir = Path(temp_dir) / 'source'
    (source_dir / '2021').mkdir(parents=True)
    (source_dir / '2022').mkdir(parents=True)

    (source_dir / '2021' / 'first.md').write_text("""---
date: 2021-01-01
description: First post
---
# First

Hello from the first post.

![Pic](pic.png "Picture")

#travel #photo
""", encoding='utf-8')

    (source_dir / '2021' / 'first_ru.md').write_text("""---
date: 2021-01-01
---
# Первый

Привет.

![Pic](pic.png)
""", encoding='utf-8')

    (source_dir / '2022' / 'second.md').write_text("""---
date: 2022-01-01
image: ../2021/pic.png
---
# Second

Second post.

#travel
""", encoding='utf-8')

    (source_dir / '2022' / 'draft.md').write_text("""---
date: 2022-06-01
draft: true
---
# Draft
""", encoding='utf-8')

    (source_dir / '2022' / 'broken.md').write_text("""---
title: [unclosed
---
Body
""", encoding='utf-8')

    (source_dir / '2021' / 'pic.png').write_bytes(sample_image_data)
    (source_dir / 'README.md').write_text('# Readme\n', encoding='utf-8')
    (source_dir / 'notes.txt').write_text('ignored', encoding='utf-8')
    (source_dir / 'ru.toml').write_text('greeting = "Привет"\n', encoding='utf-8')
    (source_dir / 'en.toml').write_text('[greeting]\nother = "Hello"\n', encoding='utf-8')

    return str(source_dir)


@pytest.fixture
def make_config(temp_dir, mock_source_dir, mock_templates_dir):
    """Build a BuildConfig pointing at the fixture directories."""
    def factory(**overrides):
        values = {
            'source_dir': mock_source_dir,
            'output_dir': str(Path(temp_dir) / 'output'),
            'templates_dir': mock_templates_dir,
            'default_language': 'en',
            'workers': 4,
        }
        values.update(overrides)
        return BuildConfig(**values)
    return factory


@pytest.fixture
def mock_session(sample_image_data):
    """Create a mock requests session returning a PNG image."""
    session = Mock()
    response = Mock()
    response.status_code = 200
    response.content = sample_image_data
    response.raise_for_status.return_value = None
    session.get.return_value = response
    return session
