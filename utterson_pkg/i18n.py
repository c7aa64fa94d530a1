"""
Translated strings for templates, loaded from TOML message files.

A message file is named after its language (``ru.toml`` or
``active.ru.toml``) and maps message ids to either a string or a table
with plural forms, of which ``other`` is used::

    greeting = "Привет"

    [read_more]
    other = "Читать далее"
"""

import logging
import os
import threading

import toml


class Localizer:
    """Process-wide message table keyed by language and message id."""

    def __init__(self, default_language='en'):
        self.default_language = default_language
        self.messages = {}
        self.logger = logging.getLogger('Utterson.Localizer')
        self._lock = threading.Lock()

    @staticmethod
    def language_from_path(path):
        name = os.path.basename(path)
        parts = name.split('.')
        if len(parts) < 2:
            return ''
        return parts[-2].lower()

    def load_message_file(self, path):
        """Load one TOML bundle. Raises on unreadable or invalid files."""
        language = self.language_from_path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = toml.load(f)

        messages = {}
        for key, value in data.items():
            if isinstance(value, dict):
                value = value.get('other', value.get('one', ''))
            messages[key] = str(value)

        with self._lock:
            self.messages.setdefault(language, {}).update(messages)
        self.logger.debug(f"Loaded {len(messages)} messages for {language!r} from {path}")
        return messages

    def localize(self, key, language=None):
        """Look up key for language, then the default language, then return key."""
        for lang in (language, self.default_language):
            if lang and key in self.messages.get(lang, {}):
                return self.messages[lang][key]
        return key
