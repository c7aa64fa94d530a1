import json
import logging
import os
import re

logger = logging.getLogger('Utterson.Search')


def strip_tags(text):
    return re.sub(r'<[^>]+>', '', text or '')


def search_entries(pages):
    entries = []
    for page in pages:
        entries.append({
            'path': page.path,
            'title': strip_tags(page.title),
            'date': page.date,
            'language': page.language,
            'tags': list(page.tags),
            'description': page.metadata.description,
            'text': ' '.join(strip_tags(page.body).split()),
        })
    return entries


def write_search_index(pages, output_dir, filename):
    """Write the final document list as a JSON search index."""
    if not filename:
        return None

    index_path = os.path.join(output_dir, filename)
    os.makedirs(os.path.dirname(index_path) or '.', exist_ok=True)
    try:
        with open(index_path, 'w', encoding='utf-8') as f:
            json.dump(search_entries(pages), f, ensure_ascii=False, indent=2)
    except (IOError, OSError, PermissionError) as e:
        logger.error(f"Failed to write search index {index_path}: {e}")
        return None

    logger.info(f"Search index written with {len(pages)} documents")
    return index_path
