import hashlib
import io
import logging
import os
import posixpath
import threading
from urllib.parse import urlparse

import requests
from PIL import Image as PILImage
from PIL import ImageOps


def is_valid_url(value):
    """Return True if value is an absolute URL with a scheme and a host."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def url_extension(url):
    """Extension of the URL path, ignoring query string and fragment."""
    stripped = urlparse(url)._replace(query='', fragment='').geturl()
    return posixpath.splitext(stripped)[1]


def escapes_root(path):
    """True if a normalized relative path climbs above its root."""
    return path == '..' or path.startswith('../')


def is_within(base, path):
    base = os.path.abspath(base)
    return os.path.commonpath([base, os.path.abspath(path)]) == base


def fix_path(ref, relative_dir, thumb_dir):
    """
    Resolve an image reference found in a document.

    Returns (path, thumb_path). Remote URLs are kept as-is and their
    thumbnail is named after the SHA-1 of the URL. Local references, even
    ones starting with '/', are resolved against the document directory.
    """
    if is_valid_url(ref):
        digest = hashlib.sha1(ref.encode('utf-8')).hexdigest()
        thumb_path = posixpath.join(thumb_dir, relative_dir, digest + url_extension(ref))
        return ref, posixpath.normpath(thumb_path)

    ref = ref.lstrip('/')
    path = posixpath.normpath(posixpath.join(relative_dir, ref))
    thumb_path = posixpath.normpath(posixpath.join(thumb_dir, relative_dir, ref))
    return path, thumb_path


class Thumbnailer:
    """
    Resize images referenced by documents into the thumbnail directory.

    Every unique image path is handled once per run, no matter how many
    documents reference it.
    """

    def __init__(self, source_dir, output_dir, max_width=140, max_height=140, timeout=30, session=None):
        self.source_dir = source_dir
        self.output_dir = output_dir
        self.max_width = max_width
        self.max_height = max_height
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logging.getLogger('Utterson.Thumbnailer')
        self.seen = set()
        self.processed = 0
        self._lock = threading.Lock()

    def claim(self, path):
        """Mark path as taken; False if another job already handled it."""
        with self._lock:
            if path in self.seen:
                return False
            self.seen.add(path)
            return True

    def process(self, image):
        """Thumbnail a single image job. Errors are logged, never raised."""
        if not image.path or not self.claim(image.path):
            return False

        try:
            img = self.open_image(image.path)
            img = self.fit(img)
            self.save(img, image.thumb_path)
        except (requests.RequestException, OSError, ValueError) as e:
            self.logger.error(f"Failed to resize image {image.path}: {e}")
            return False

        with self._lock:
            self.processed += 1
        self.logger.debug(f"Thumbnail created: {image.path} -> {image.thumb_path}")
        return True

    def open_image(self, path):
        if is_valid_url(path):
            return self.download_image(path)

        local_path = os.path.join(self.source_dir, path)
        if not is_within(self.source_dir, local_path):
            raise ValueError(f"Image path {path!r} is outside the source directory")
        with PILImage.open(local_path) as img:
            img.load()
            return ImageOps.exif_transpose(img)

    def download_image(self, url):
        """Fetch a remote image into memory."""
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        with PILImage.open(io.BytesIO(response.content)) as img:
            img.load()
            return ImageOps.exif_transpose(img)

    def fit(self, img):
        """Scale down to fit the configured box, keeping the aspect ratio."""
        img = img.copy()
        img.thumbnail((self.max_width, self.max_height), PILImage.LANCZOS)
        return img

    def save(self, img, thumb_path):
        dest_path = os.path.join(self.output_dir, thumb_path)
        if not is_within(self.output_dir, dest_path):
            raise ValueError(f"Thumbnail path {thumb_path!r} is outside the output directory")
        os.makedirs(os.path.dirname(dest_path) or '.', exist_ok=True)

        ext = os.path.splitext(dest_path)[1].lower()
        image_format = PILImage.registered_extensions().get(ext)
        if image_format is None:
            image_format = 'PNG'
        if image_format == 'JPEG' and img.mode not in ('RGB', 'L'):
            img = img.convert('RGB')

        img.save(dest_path, image_format)

    def close(self):
        self.session.close()
