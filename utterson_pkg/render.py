import json
import logging
import os
import posixpath
from dataclasses import asdict, is_dataclass

from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound, TemplateSyntaxError

from .language import lang_get_parameter, lang_to_get_parameter, language_from_filename
from .models import Document, Metadata
from .navigation import NavigationIndex, language_variations, next_page, prev_page, stable_sort, by_language_desc
from .search import strip_tags


def back(path):
    """Relative path from a page to the output root, e.g. '../' for 'a/b.html'."""
    return '../' * (len(path.split('/')) - 1)


def year(date):
    if len(date or '') < 4:
        return ''
    return date[:4]


def join(elems, sep):
    return sep.join(elems)


def debug_json(value):
    def default(obj):
        if is_dataclass(obj):
            return asdict(obj)
        return str(obj)
    return json.dumps(value, indent=2, default=default, ensure_ascii=False)


class Page:
    """Template context for one rendered file."""

    def __init__(self, current, all_pages, language_variations=None, default_language='', comments_site_id=''):
        self.current = current
        self.all = all_pages
        self.language_variations = language_variations or []
        self.default_language = default_language
        self.comments_site_id = comments_site_id


class Renderer:
    """Render documents and standalone templates with Jinja2."""

    def __init__(self, config, localizer=None):
        self.config = config
        self.localizer = localizer
        self.logger = logging.getLogger('Utterson.Renderer')

        if not os.path.isdir(config.templates_dir):
            raise FileNotFoundError(f"Templates directory not found: {config.templates_dir}")

        self.env = Environment(loader=FileSystemLoader(config.templates_dir))
        self.env.globals.update(
            prev_page=self._prev_page,
            next_page=self._next_page,
            all_language_variations=self._all_language_variations,
            lang_get_parameter=lambda path: lang_get_parameter(path, config.default_language),
            lang_to_get_parameter=lang_to_get_parameter,
            back=back,
            year=year,
            join=join,
            debug_json=debug_json,
            strip_tags=strip_tags,
            i18n=self.i18n,
            config=config,
        )
        self.env.filters['year'] = year
        self.env.filters['strip_tags'] = strip_tags
        self.env.filters['lang_to_get_parameter'] = lang_to_get_parameter

        try:
            self.post_template = self.env.get_template(config.template_post)
        except TemplateNotFound:
            raise FileNotFoundError(f"Template {config.template_post!r} not found in {config.templates_dir}")

    def i18n(self, key, language=None):
        if self.localizer is None:
            return key
        return self.localizer.localize(key, language)

    @staticmethod
    def _prev_page(page):
        return prev_page(page.all, page.current)

    @staticmethod
    def _next_page(page):
        return next_page(page.all, page.current)

    @staticmethod
    def _all_language_variations(page):
        if page.language_variations:
            return page.language_variations
        return language_variations(page.all, page.current)

    def write(self, template, relative_path, context):
        """Render template into <output_dir>/<relative_path>."""
        output_file_path = os.path.join(self.config.output_dir, relative_path)
        os.makedirs(os.path.dirname(output_file_path) or '.', exist_ok=True)
        rendered_html = template.render(**context)
        with open(output_file_path, 'w', encoding='utf-8') as output_file:
            output_file.write(rendered_html)
        self.logger.debug(f"Generated HTML: {output_file_path}")

    def context(self, page, navigation=None):
        current = page.current
        context = {
            'page': page,
            'current': current,
            'pages': page.all,
            'language_variations': self._all_language_variations(page),
            'relative_path': back(current.path),
            'site_title': self.config.title,
            'site_description': self.config.short_description,
            'site_author': self.config.author,
            'default_language': self.config.default_language,
            'comments_site_id': self.config.comments_site_id,
        }
        if navigation is not None and isinstance(current, Document):
            context['prev'] = navigation.prev(current)
            context['next'] = navigation.next(current)
        return context

    def render_pages(self, pages, navigation=None):
        """Render every document; returns the number of files written."""
        navigation = navigation or NavigationIndex(pages)
        rendered = 0
        for doc in pages:
            template = self.post_template
            if doc.template:
                try:
                    template = self.env.get_template(doc.template)
                except (TemplateNotFound, TemplateSyntaxError) as e:
                    self.logger.error(f"Template error for {doc.source}: {e}")
                    continue

            page = Page(
                doc, pages,
                language_variations=navigation.variations(doc),
                default_language=self.config.default_language,
                comments_site_id=self.config.comments_site_id,
            )
            try:
                self.write(template, doc.path, self.context(page, navigation))
                rendered += 1
            except (IOError, OSError, PermissionError, TemplateError) as e:
                self.logger.error(f"Failed to write HTML file {doc.path}: {e}")
        return rendered

    def standalone_templates(self, pages):
        """Top-level template names rendered as pages of their own."""
        used = {doc.template for doc in pages if doc.template}
        names = []
        for name in self.env.list_templates():
            if '/' in name:
                continue
            if posixpath.basename(name).startswith(('_', '.')):
                continue
            if name == self.config.template_post or name in used:
                continue
            names.append(name)
        return names

    def render_templates(self, pages):
        """
        Render hand-authored templates such as index.html or index_ru.html.

        Templates are grouped by the same language suffix rule as documents,
        so every variant sees the other languages of the same page.
        """
        groups = {}
        for sequence, name in enumerate(self.standalone_templates(pages)):
            group_id, language = language_from_filename(name)
            entry = Document(
                source=name,
                path=name,
                group_id=group_id,
                language=language or self.config.default_language,
                metadata=Metadata(language=language or self.config.default_language),
                sequence=sequence,
            )
            groups.setdefault(group_id, []).append(entry)

        rendered = 0
        for group_id in sorted(groups):
            variations = stable_sort(groups[group_id], by_language_desc)
            for entry in variations:
                try:
                    template = self.env.get_template(entry.path)
                except (TemplateNotFound, TemplateSyntaxError) as e:
                    self.logger.warning(f"Template error for {entry.path}: {e}")
                    continue

                page = Page(
                    entry, pages,
                    language_variations=variations,
                    default_language=self.config.default_language,
                    comments_site_id=self.config.comments_site_id,
                )
                try:
                    self.write(template, entry.path, self.context(page))
                    rendered += 1
                except (IOError, OSError, PermissionError, TemplateError) as e:
                    self.logger.error(f"Failed to write template {entry.path}: {e}")
        return rendered
