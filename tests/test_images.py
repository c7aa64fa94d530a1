"""Tests for image path resolution and thumbnail generation."""

import os
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests
from PIL import Image as PILImage

from utterson_pkg.images import Thumbnailer, escapes_root, fix_path, is_valid_url, url_extension
from utterson_pkg.models import Image


class TestFixPath:
    """Test cases for fix_path."""

    def test_relative_reference(self):
        assert fix_path('pic.png', '2022', 'thumb') == ('2022/pic.png', 'thumb/2022/pic.png')

    def test_parent_reference(self):
        assert fix_path('../2021/pic.png', '2022', 'thumb') == ('2021/pic.png', 'thumb/2021/pic.png')

    def test_root_document(self):
        assert fix_path('pic.png', '', 'thumb') == ('pic.png', 'thumb/pic.png')

    def test_site_root_reference_stays_relative(self):
        assert fix_path('/abs.png', '2022', 'thumb') == ('2022/abs.png', 'thumb/2022/abs.png')
        assert fix_path('/images/pic.png', '', 'thumb') == ('images/pic.png', 'thumb/images/pic.png')

    def test_reference_above_source(self):
        path, thumb_path = fix_path('../../x.png', '2022', 'thumb')
        assert path == '../x.png'
        assert escapes_root(path)

    def test_escapes_root(self):
        assert escapes_root('..')
        assert escapes_root('../a/b.png')
        assert not escapes_root('a/../b.png')
        assert not escapes_root('..hidden/b.png')

    def test_remote_reference(self):
        path, thumb_path = fix_path('https://example.com/path.png', '2022', 'thumb')
        assert path == 'https://example.com/path.png'
        assert thumb_path == 'thumb/2022/d8b3c394439d1ab84724f824fdad0c876d41395c.png'

    def test_remote_reference_is_deterministic(self):
        assert fix_path('https://path.com', 'a', 't') == fix_path('https://path.com', 'a', 't')

    def test_url_helpers(self):
        assert is_valid_url('https://example.com/a.png')
        assert not is_valid_url('images/a.png')
        assert url_extension('https://example.com/a.jpg?size=2#x') == '.jpg'


class TestThumbnailer:
    """Test cases for Thumbnailer."""

    @pytest.fixture
    def source(self, temp_dir, sample_image_data):
        source_dir = Path(temp_dir) / 'src'
        (source_dir / '2022').mkdir(parents=True)
        (source_dir / '2022' / 'pic.png').write_bytes(sample_image_data)
        return str(source_dir)

    @pytest.fixture
    def output(self, temp_dir):
        return str(Path(temp_dir) / 'out')

    def test_local_image(self, source, output, mock_session):
        thumbnailer = Thumbnailer(source, output, session=mock_session)
        image = Image(path='2022/pic.png', thumb_path='thumb/2022/pic.png')

        assert thumbnailer.process(image) is True
        dest = os.path.join(output, 'thumb', '2022', 'pic.png')
        with PILImage.open(dest) as img:
            assert img.size == (140, 70)
        assert thumbnailer.processed == 1
        mock_session.get.assert_not_called()

    def test_same_path_processed_once(self, source, output, mock_session):
        thumbnailer = Thumbnailer(source, output, session=mock_session)
        image = Image(path='2022/pic.png', thumb_path='thumb/2022/pic.png')

        assert thumbnailer.process(image) is True
        assert thumbnailer.process(Image(path='2022/pic.png', thumb_path='thumb/2022/pic.png', alt='x')) is False
        assert thumbnailer.processed == 1

    def test_small_image_is_not_enlarged(self, temp_dir, output, mock_session):
        PILImage.new('RGB', (50, 30)).save(os.path.join(temp_dir, 'small.png'))
        thumbnailer = Thumbnailer(temp_dir, output, session=mock_session)

        assert thumbnailer.process(Image(path='small.png', thumb_path='thumb/small.png'))
        with PILImage.open(os.path.join(output, 'thumb', 'small.png')) as img:
            assert img.size == (50, 30)

    def test_remote_image(self, source, output, mock_session):
        thumbnailer = Thumbnailer(source, output, timeout=5, session=mock_session)
        path, thumb_path = fix_path('https://path.com', '2022', 'thumb')

        assert thumbnailer.process(Image(path=path, thumb_path=thumb_path)) is True
        mock_session.get.assert_called_once_with('https://path.com', timeout=5)
        # Unknown extensions are written as PNG
        with PILImage.open(os.path.join(output, thumb_path)) as img:
            assert img.format == 'PNG'

    def test_jpeg_output(self, source, output, mock_session):
        thumbnailer = Thumbnailer(source, output, session=mock_session)

        assert thumbnailer.process(Image(path='2022/pic.png', thumb_path='thumb/2022/pic.jpg'))
        with PILImage.open(os.path.join(output, 'thumb', '2022', 'pic.jpg')) as img:
            assert img.format == 'JPEG'

    def test_remote_failure_is_logged(self, source, output):
        session = Mock()
        session.get.side_effect = requests.ConnectionError("unreachable")
        thumbnailer = Thumbnailer(source, output, session=session)

        assert thumbnailer.process(Image(path='https://example.com/a.png', thumb_path='thumb/a.png')) is False
        assert thumbnailer.processed == 0

    def test_http_error(self, source, output):
        session = Mock()
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404")
        session.get.return_value = response
        thumbnailer = Thumbnailer(source, output, session=session)

        assert thumbnailer.process(Image(path='https://example.com/a.png', thumb_path='thumb/a.png')) is False

    def test_missing_local_file(self, source, output, mock_session):
        thumbnailer = Thumbnailer(source, output, session=mock_session)
        assert thumbnailer.process(Image(path='2022/missing.png', thumb_path='thumb/2022/missing.png')) is False
        assert not os.path.exists(os.path.join(output, 'thumb', '2022', 'missing.png'))

    def test_not_an_image(self, source, output, mock_session):
        Path(source, '2022', 'fake.png').write_text('not an image')
        thumbnailer = Thumbnailer(source, output, session=mock_session)
        assert thumbnailer.process(Image(path='2022/fake.png', thumb_path='thumb/2022/fake.png')) is False

    def test_read_outside_source_is_refused(self, temp_dir, source, output, mock_session):
        elsewhere = Path(temp_dir) / 'elsewhere'
        elsewhere.mkdir()
        PILImage.new('RGB', (800, 800)).save(elsewhere / 'pic.png')
        thumbnailer = Thumbnailer(source, output, session=mock_session)

        assert thumbnailer.process(Image(path='../elsewhere/pic.png', thumb_path='thumb/pic.png')) is False
        assert not os.path.exists(os.path.join(output, 'thumb', 'pic.png'))
        with PILImage.open(elsewhere / 'pic.png') as img:
            assert img.size == (800, 800)

    def test_write_outside_output_is_refused(self, temp_dir, source, output, mock_session):
        absolute = os.path.join(temp_dir, 'absolute.png')
        image = Image(path='2022/pic.png', thumb_path='../escaped.png')

        assert Thumbnailer(source, output, session=mock_session).process(image) is False
        assert Thumbnailer(source, output, session=mock_session).process(Image(path='2022/pic.png', thumb_path=absolute)) is False
        assert not os.path.exists(os.path.join(temp_dir, 'escaped.png'))
        assert not os.path.exists(absolute)

    def test_close(self, source, output, mock_session):
        Thumbnailer(source, output, session=mock_session).close()
        mock_session.close.assert_called_once()
