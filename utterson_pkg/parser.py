"""
Markdown source parsing: front matter, conventions and body conversion.

A source file may start with a YAML block wrapped in ``---`` lines::

    ---
    title: "Title"
    date: 2021-10-24
    ---
    # Heading used as the title
    Page content

    #tag1 #tag2

Everything missing from the front matter is inferred from the body: the
first ``# `` heading becomes the title, the first other ``#`` line becomes
the tag list, and every image reference is collected for thumbnailing.
"""

import logging
import posixpath
import re
from datetime import date, datetime

import markdown
import mistune
import yaml

from .images import escapes_root, fix_path
from .language import resolve_language
from .models import Document, Image, Metadata, Toggle, parse_bool

logger = logging.getLogger('Utterson.Parser')

FRONT_MATTER_DELIMITER = '---'

IMAGE_MARKDOWN = re.compile(r'!\[(.*?)\]\(([^\s)]*)\s*"?([^"]*?)?"?\)')
IMAGE_HTML = re.compile(r'<img(.*?)>')
HTML_ATTRIBUTES = re.compile(r'(\S+)\s*=\s*"?(.*?)"')

TOGGLE_FIELDS = ('typography_enabled', 'comments_enabled', 'show_social_sharing_buttons')
STRING_FIELDS = ('type', 'title', 'language', 'slug', 'description', 'author', 'keywords', 'template', 'image')


class MetadataError(ValueError):
    """Front matter could not be decoded."""


class MarkdownConverter:
    """Convert Markdown to HTML, optionally with typographic quotes and dashes."""

    def __init__(self):
        self.markdown_parser = self.create_markdown_parser()

    def create_markdown_parser(self):
        """Create a Mistune markdown parser with a custom renderer."""
        class CustomRenderer(mistune.HTMLRenderer):
            def __init__(self):
                super().__init__(escape=False)
        return mistune.create_markdown(
            renderer=CustomRenderer(),
            plugins=['table', 'task_lists', 'strikethrough']
        )

    def to_html(self, text, typography=False):
        if typography:
            return markdown.markdown(text, extensions=['extra', 'smarty']) + '\n'
        return self.markdown_parser(text)

    def inline(self, text):
        """Render a single line and drop the wrapping paragraph."""
        html = self.markdown_parser(text.strip()).strip()
        if html.startswith('<p>'):
            html = html[len('<p>'):]
        if html.endswith('</p>'):
            html = html[:-len('</p>')]
        return html


def split_front_matter(content):
    """Return (metadata_block, body); metadata is '' when there is none."""
    if content.startswith(FRONT_MATTER_DELIMITER):
        parts = content.split(FRONT_MATTER_DELIMITER, 2)
        if len(parts) == 3:
            return parts[1], parts[2]
    return '', content


def format_date(value):
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d')
    if isinstance(value, date):
        return value.isoformat()
    if value is None:
        return ''
    return str(value)


def parse_tags(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [tag for tag in value.split(', ') if tag]
    if isinstance(value, (list, tuple)):
        return [str(tag) for tag in value]
    return [str(value)]


def decode_metadata(block):
    """Decode a YAML front matter block into a Metadata record."""
    metadata = Metadata()
    if not block.strip():
        return metadata

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise MetadataError(f"Invalid YAML front matter: {e}") from e

    if data is None:
        return metadata
    if not isinstance(data, dict):
        raise MetadataError(f"Front matter must be a mapping, got {type(data).__name__}")

    for name in STRING_FIELDS:
        value = data.get(name)
        if value is not None:
            setattr(metadata, name, str(value))
    for name in TOGGLE_FIELDS:
        setattr(metadata, name, Toggle.from_value(data.get(name)))

    metadata.date = format_date(data.get('date'))
    metadata.tags = parse_tags(data.get('tags'))
    metadata.draft = parse_bool(data.get('draft', False))
    return metadata


def make_image(ref, relative_dir, thumb_dir, **fields):
    """Build an Image for ref, or None if it points outside the source tree."""
    path, thumb_path = fix_path(ref, relative_dir, thumb_dir)
    if escapes_root(path):
        logger.warning(f"Skipping image outside the source directory: {ref}")
        return None
    return Image(path=path, thumb_path=thumb_path, **fields)


def parse_html_image(attributes, relative_dir, thumb_dir):
    src = None
    alt = title = ''
    for name, value in HTML_ATTRIBUTES.findall(attributes):
        if name == 'src':
            src = value
        elif name == 'alt':
            alt = value
        elif name == 'title':
            title = value
    if src is None:
        return None
    return make_image(src, relative_dir, thumb_dir, alt=alt, title=title)


def infer_conventions(metadata, body, relative_dir, thumb_dir, converter):
    """
    Fill title, tags and images from the body and return the remaining
    Markdown text with the header and tag lines removed.
    """
    has_header = False
    has_tags = False
    in_fence = False
    lines = []

    for line in body.strip().splitlines():
        if line.strip().startswith('```'):
            in_fence = not in_fence

        if not in_fence:
            if line.startswith('# ') and not has_header:
                if not metadata.title:
                    metadata.title = converter.inline(line[2:])
                has_header = True
                continue

            if line.startswith('#') and not has_tags:
                tags = [token.strip('#,') for token in line.split()]
                metadata.tags = [tag for tag in tags if tag]
                has_tags = True
                continue

        for alt, ref, title in IMAGE_MARKDOWN.findall(line):
            image = make_image(ref, relative_dir, thumb_dir, alt=alt, title=title)
            if image is not None:
                metadata.images.append(image)

        for attributes in IMAGE_HTML.findall(line):
            image = parse_html_image(attributes, relative_dir, thumb_dir)
            if image is not None:
                metadata.images.append(image)

        lines.append(line + '\n')

    if metadata.image:
        image = make_image(metadata.image, relative_dir, thumb_dir, is_promo=True)
        if image is not None:
            metadata.images.insert(0, image)

    return ''.join(lines)


def build_metadata(block, body, relative_dir, thumb_dir, converter):
    """Decode front matter, then infer what it left out. Returns (metadata, markdown)."""
    metadata = decode_metadata(block)
    text = infer_conventions(metadata, body, relative_dir, thumb_dir, converter)
    return metadata, text


def output_path(source):
    return posixpath.splitext(source)[0] + '.html'


class DocumentParser:
    """Turn the raw text of one Markdown file into a Document."""

    def __init__(self, config, converter=None):
        self.config = config
        self.converter = converter or MarkdownConverter()

    def parse(self, content, source, sequence=0):
        """
        Parse content read from source (relative to the source directory).

        Raises MetadataError for malformed front matter.
        """
        relative_dir = posixpath.dirname(source)
        block, body = split_front_matter(content)
        metadata, text = build_metadata(block, body, relative_dir, self.config.thumb_path, self.converter)

        group_id, language = resolve_language(source, metadata.language, self.config.default_language)
        metadata.language = language

        typography = metadata.typography_enabled.resolve(self.config.typography_enabled)

        return Document(
            source=source,
            path=output_path(source),
            group_id=group_id,
            language=language,
            metadata=metadata,
            markdown=text,
            body=self.converter.to_html(text, typography=typography),
            sequence=sequence,
            comments_enabled=metadata.comments_enabled.resolve(self.config.comments_enabled),
            typography_enabled=typography,
            show_social_sharing_buttons=metadata.show_social_sharing_buttons.resolve(
                self.config.show_social_sharing_buttons
            ),
        )
