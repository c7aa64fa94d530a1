"""
Language suffix convention shared by Markdown sources and templates.

A file named ``<base>_<lang>.<ext>`` belongs to the group ``<base>.<ext>``
in language ``<lang>``; any other name is its own group.
"""

import re

LANG_SUFFIX = re.compile(r'^(?P<base>.*)_(?P<lang>[A-Za-z]{2})(?P<ext>\.[^./]*)$')

# Only output and source names are rewritten into ?lang= URLs
URL_LANG_SUFFIX = re.compile(r'_([a-z]{2})\.(html|md)$')


def language_from_filename(filename):
    """Split a filename into its group id and language code ('' if none)."""
    match = LANG_SUFFIX.match(filename)
    if not match:
        return filename, ''
    return match.group('base') + match.group('ext'), match.group('lang').lower()


def resolve_language(source, explicit_language, default_language):
    """
    Return (group_id, language) for a document.

    An explicit metadata language is authoritative and keeps the source as
    the group id. Otherwise the filename suffix is used, falling back to the
    configured default.
    """
    if explicit_language:
        return source, str(explicit_language).lower()

    group_id, language = language_from_filename(source)
    if not language:
        language = default_language or ''
    return group_id, language.lower()


def lang_get_parameter(path, default_language):
    """Return '?lang=xx' for a non-default language suffix, else ''."""
    match = URL_LANG_SUFFIX.search(path)
    if not match:
        return ''
    lang = match.group(1)
    if lang == default_language:
        return ''
    return f'?lang={lang}'


def lang_to_get_parameter(url):
    """Rewrite 'post_ru.html' into 'post.html?lang=ru'."""
    match = URL_LANG_SUFFIX.search(url)
    if not match:
        return url
    return url[:match.start()] + '.html?lang=' + match.group(1)
