import os
import shutil
import logging
import threading
import time

from .i18n import Localizer
from .images import Thumbnailer
from .navigation import NavigationIndex, by_date_desc, stable_sort
from .parser import DocumentParser, MarkdownConverter, MetadataError
from .pipeline import WorkerPool
from .render import Renderer
from .search import write_search_index
from .tags import TagCounter

KIND_MARKDOWN = 'markdown'
KIND_MESSAGES = 'messages'
KIND_ASSET = 'asset'

# Thread-local storage for per-worker Markdown converters
thread_local = threading.local()


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Starting site build",
            "Site build completed in",
            "Total documents generated:",
            "Total templates generated:",
            "Total assets copied:",
            "Total thumbnails created:",
            "Tags counts:",
            "Search index written",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages) or record.getMessage().startswith("  ")


def setup_logging(log_dir='logs', level=logging.INFO):
    """Set up console and file logging for the Utterson logger tree."""
    logger = logging.getLogger('Utterson')
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        # Console handler with filter
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.addFilter(InfoFilter())
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

        # File handler for all logs
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            log_filename = time.strftime('utterson_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(log_dir, log_filename))
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(file_handler)

    return logger


def classify(relative_path, allowed_extensions):
    """Return which handling path a source file takes, or None to ignore it."""
    ext = os.path.splitext(relative_path)[1]
    if ext == '.md':
        if relative_path == 'README.md':
            return None
        return KIND_MARKDOWN
    if ext == '.toml':
        return KIND_MESSAGES
    if ext in allowed_extensions:
        return KIND_ASSET
    return None


class Utterson:
    """
    Build a site from a source directory.

    The source tree is walked once; Markdown files are parsed by a pool of
    workers which feed image jobs to a separate thumbnail pool. Documents
    are collected, sorted newest first and rendered once every parse worker
    has finished.
    """

    def __init__(self, config, session=None):
        self.config = config
        self.logger = logging.getLogger('Utterson')

        self.localizer = Localizer(config.default_language)
        self.tags = TagCounter()
        self.thumbnailer = Thumbnailer(
            config.source_dir, config.output_dir,
            max_width=config.thumb_max_width,
            max_height=config.thumb_max_height,
            timeout=config.image_timeout,
            session=session,
        )

        self.documents = []
        self.pages = []
        self.documents_generated = 0
        self.templates_generated = 0
        self.assets_copied = 0
        self._documents_lock = threading.Lock()
        self._image_pool = None

    def check_source_directory(self):
        """Fail fast if the source directory cannot be listed."""
        source_dir = self.config.source_dir
        if not os.path.isdir(source_dir):
            raise NotADirectoryError(f"Source directory not found: {source_dir}")
        # Raises PermissionError for unreadable directories
        os.listdir(source_dir)

    def create_output_dir(self):
        os.makedirs(self.config.output_dir, exist_ok=True)

    def walk_source(self):
        """
        Yield source-relative paths of files to process, in a stable order.

        The output directory and hidden directories are skipped.
        """
        source_dir = os.path.abspath(self.config.source_dir)
        output_dir = os.path.abspath(self.config.output_dir)

        def on_error(error):
            if os.path.abspath(error.filename or '') == source_dir:
                raise error
            self.logger.error(f"Failed to read directory {error.filename}: {error}")

        for root, dirs, files in os.walk(source_dir, onerror=on_error):
            dirs[:] = sorted(
                d for d in dirs
                if not d.startswith('.') and os.path.abspath(os.path.join(root, d)) != output_dir
            )
            for name in sorted(files):
                full_path = os.path.join(root, name)
                yield os.path.relpath(full_path, source_dir).replace(os.sep, '/')

    def get_converter(self):
        if not hasattr(thread_local, 'converter'):
            thread_local.converter = MarkdownConverter()
        return thread_local.converter

    def handle_file(self, job):
        """Dispatch one discovered file to its handling path."""
        sequence, kind, relative_path = job
        if kind == KIND_MARKDOWN:
            self.process_markdown(sequence, relative_path)
        elif kind == KIND_MESSAGES:
            self.load_messages(relative_path)
        else:
            self.copy_asset(relative_path)

    def process_markdown(self, sequence, relative_path):
        """Parse a single markdown file and queue its images."""
        file_path = os.path.join(self.config.source_dir, relative_path)
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (IOError, OSError, PermissionError, UnicodeDecodeError) as e:
            self.logger.error(f"Failed to read markdown file {file_path}: {e}")
            return None

        parser = DocumentParser(self.config, self.get_converter())
        try:
            doc = parser.parse(content, relative_path, sequence=sequence)
        except MetadataError as e:
            self.logger.error(f"Error processing markdown file {file_path}: {e}")
            return None

        if doc.metadata.draft and not self.config.show_drafts:
            self.logger.debug(f"Skipping draft {relative_path}")
            return None

        for image in doc.images:
            self._image_pool.submit(image)

        if doc.language == self.config.default_language:
            self.tags.add(doc.tags)

        with self._documents_lock:
            self.documents.append(doc)
        return doc

    def load_messages(self, relative_path):
        file_path = os.path.join(self.config.source_dir, relative_path)
        try:
            self.localizer.load_message_file(file_path)
        except Exception as e:
            self.logger.error(f"Failed to load message file {file_path}: {e}")

    def copy_asset(self, relative_path):
        src = os.path.join(self.config.source_dir, relative_path)
        dst = os.path.join(self.config.output_dir, relative_path)
        try:
            os.makedirs(os.path.dirname(dst), exist_ok=True)
            shutil.copyfile(src, dst)
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to copy {src} to {dst}: {e}")
            return
        with self._documents_lock:
            self.assets_copied += 1
        self.logger.debug(f"Copied asset: {src} -> {dst}")

    def collect(self):
        """Walk the source tree through the parse and thumbnail pools."""
        self._image_pool = WorkerPool(
            'Thumbnails', self.thumbnailer.process,
            workers=self.config.image_workers, maxsize=100,
        ).start()
        file_pool = WorkerPool(
            'Files', self.handle_file,
            workers=self.config.workers, maxsize=self.config.workers * 2,
        ).start()

        try:
            for sequence, relative_path in enumerate(self.walk_source()):
                kind = classify(relative_path, self.config.allowed_extensions)
                if kind is None:
                    continue
                file_pool.submit((sequence, kind, relative_path))
        finally:
            file_pool.join()
            # Every parse worker has finished producing image jobs
            self._image_pool.close()

        return self.documents

    def build(self):
        """Main build process."""
        start_time = time.time()
        self.logger.info("Starting site build...")

        self.check_source_directory()
        self.create_output_dir()
        renderer = Renderer(self.config, self.localizer)

        try:
            self.collect()

            self.pages = stable_sort(self.documents, by_date_desc)
            navigation = NavigationIndex(self.pages)

            self.documents_generated = renderer.render_pages(self.pages, navigation)
            self.tags.log_stats(self.logger)
            self.templates_generated = renderer.render_templates(self.pages)
            write_search_index(self.pages, self.config.output_dir, self.config.search_index)
        finally:
            if self._image_pool is not None:
                self._image_pool.join()
            self.thumbnailer.close()

        self.logger.info(f"Site build completed in {time.time() - start_time:.6f} seconds.")
        self.logger.info(f"Total documents generated: {self.documents_generated}")
        self.logger.info(f"Total templates generated: {self.templates_generated}")
        self.logger.info(f"Total assets copied: {self.assets_copied}")
        self.logger.info(f"Total thumbnails created: {self.thumbnailer.processed}")
        return self.pages
