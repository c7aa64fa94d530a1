"""
Utterson - a static site generator for multilingual blogs.

Utterson takes Markdown files with optional YAML front matter, infers
titles, tags and language variants by convention, thumbnails embedded
images and renders everything through Jinja2 templates.
"""

__version__ = "1.0.0"

from .core import Utterson
from .parser import DocumentParser
from .settings import BuildConfig, UttersonSettings

__all__ = ['Utterson', 'DocumentParser', 'BuildConfig', 'UttersonSettings']
