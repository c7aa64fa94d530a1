"""
Data records shared by the parser, the pipeline and the renderer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .language import lang_to_get_parameter


def parse_bool(value):
    """Coerce YAML or environment values such as "false" or "yes" to bool."""
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', 'on', '1')
    return bool(value)


class Toggle(Enum):
    """Per-document switch that may inherit a site-wide default."""

    UNSET = 'unset'
    ENABLED = 'enabled'
    DISABLED = 'disabled'

    @classmethod
    def from_value(cls, value):
        if value is None:
            return cls.UNSET
        if isinstance(value, Toggle):
            return value
        return cls.ENABLED if parse_bool(value) else cls.DISABLED

    def resolve(self, default: bool) -> bool:
        if self is Toggle.UNSET:
            return bool(default)
        return self is Toggle.ENABLED


@dataclass
class Image:
    """Picture referenced by a document, either in metadata or in the body."""

    path: str
    thumb_path: str
    alt: str = ''
    title: str = ''
    is_promo: bool = False


@dataclass
class Metadata:
    type: str = 'post'
    title: str = ''
    date: str = ''
    tags: List[str] = field(default_factory=list)
    language: str = ''
    slug: str = ''
    description: str = ''
    author: str = ''
    keywords: str = ''
    draft: bool = False
    template: str = ''
    typography_enabled: Toggle = Toggle.UNSET
    comments_enabled: Toggle = Toggle.UNSET
    show_social_sharing_buttons: Toggle = Toggle.UNSET
    image: str = ''
    images: List[Image] = field(default_factory=list)


@dataclass
class Document:
    """
    One page built from one Markdown source file.

    `path` is the output location relative to the output directory and
    `group_id` is shared by every language variant of the same page.
    """

    source: str
    path: str
    group_id: str
    language: str
    metadata: Metadata
    markdown: str = ''
    body: str = ''
    sequence: int = 0
    comments_enabled: bool = False
    typography_enabled: bool = False
    show_social_sharing_buttons: bool = False

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def date(self) -> str:
        return self.metadata.date

    @property
    def tags(self) -> List[str]:
        return self.metadata.tags

    @property
    def images(self) -> List[Image]:
        return self.metadata.images

    @property
    def template(self) -> Optional[str]:
        return self.metadata.template or None

    @property
    def canonical(self) -> str:
        return lang_to_get_parameter(self.path)
