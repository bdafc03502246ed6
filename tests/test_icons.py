"""Tests for icon bundle metadata and packaging."""

import io
import json
import zipfile

import pytest

from common.exceptions import ConfigurationError
from transfer.icons import (
    ICON_METADATA_FILENAME,
    IconEntry,
    IconMetadata,
    build_icon_bundle,
    load_icon_metadata,
)


@pytest.fixture
def icon_dir(tmp_path):
    """
    Create an exported icon directory with one static and one animated icon.

    Returns:
        Path to the directory
    """
    (tmp_path / 'minecraft').mkdir()
    (tmp_path / 'minecraft' / 'iron_ingot.png').write_bytes(b'\x89PNG-iron')
    (tmp_path / 'minecraft' / 'lava_bucket.webp').write_bytes(b'RIFF-lava')
    metadata = IconMetadata()
    metadata.add_static_icon('minecraft:iron_ingot', 'minecraft/iron_ingot.png')
    metadata.add_animated_icon('minecraft:lava_bucket', 'minecraft/lava_bucket.webp', 16, 100)
    (tmp_path / ICON_METADATA_FILENAME).write_text(metadata.to_json())
    return tmp_path


class TestIconEntry:
    """Test icon entry construction."""

    def test_static_icon(self):
        entry = IconEntry.static_icon('minecraft/stick.png')

        assert not entry.animated
        assert (entry.frame_count, entry.frame_time_ms) == (1, 0)

    def test_animated_icon_json(self):
        entry = IconEntry.animated_icon('minecraft/lava_bucket.webp', 16, 100)

        assert entry.to_json_map() == {
            'filename': 'minecraft/lava_bucket.webp',
            'animated': True,
            'frameCount': 16,
            'frameTimeMs': 100,
        }

    @pytest.mark.parametrize('kwargs', [
        {'filename': ''},
        {'filename': 'a.png', 'frame_count': 0},
        {'filename': 'a.png', 'frame_time_ms': -1},
    ])
    def test_invalid_entries(self, kwargs):
        with pytest.raises(ValueError):
            IconEntry(**kwargs)


class TestIconMetadata:
    """Test the icon manifest."""

    def test_json_keeps_insertion_order(self, icon_dir):
        metadata = load_icon_metadata(icon_dir)

        assert list(metadata.icons) == ['minecraft:iron_ingot', 'minecraft:lava_bucket']
        assert len(metadata) == 2
        assert metadata.animated_count == 1
        assert metadata.icons['minecraft:lava_bucket'].frame_count == 16

    def test_null_manifest_is_empty(self):
        assert len(IconMetadata.from_json('null')) == 0

    def test_entry_without_filename_is_rejected(self):
        with pytest.raises(ValueError, match='minecraft:stick has no filename'):
            IconMetadata.from_json('{"minecraft:stick": {"animated": false}}')

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ConfigurationError, match='Cannot read'):
            load_icon_metadata(tmp_path)

    def test_malformed_manifest(self, tmp_path):
        (tmp_path / ICON_METADATA_FILENAME).write_text('[1, 2]')

        with pytest.raises(ConfigurationError, match='Invalid icon metadata'):
            load_icon_metadata(tmp_path)


class TestBuildIconBundle:
    """Test ZIP packaging of an icon directory."""

    def test_bundle_contents(self, icon_dir):
        bundle = build_icon_bundle(icon_dir, load_icon_metadata(icon_dir))

        with zipfile.ZipFile(io.BytesIO(bundle)) as archive:
            assert archive.namelist() == [
                ICON_METADATA_FILENAME, 'minecraft/iron_ingot.png', 'minecraft/lava_bucket.webp',
            ]
            assert archive.read('minecraft/lava_bucket.webp') == b'RIFF-lava'
            manifest = json.loads(archive.read(ICON_METADATA_FILENAME))
        assert manifest['minecraft:lava_bucket']['animated'] is True

    def test_missing_icon_file_is_skipped(self, icon_dir):
        metadata = load_icon_metadata(icon_dir)
        metadata.add_static_icon('minecraft:stick', 'minecraft/stick.png')

        bundle = build_icon_bundle(icon_dir, metadata)

        with zipfile.ZipFile(io.BytesIO(bundle)) as archive:
            assert 'minecraft/stick.png' not in archive.namelist()
            assert 'minecraft:stick' in json.loads(archive.read(ICON_METADATA_FILENAME))

    def test_shared_file_is_written_once(self, icon_dir):
        metadata = IconMetadata()
        metadata.add_static_icon('minecraft:iron_ingot', 'minecraft/iron_ingot.png')
        metadata.add_static_icon('othermod:iron_ingot', 'minecraft/iron_ingot.png')

        bundle = build_icon_bundle(icon_dir, metadata)

        with zipfile.ZipFile(io.BytesIO(bundle)) as archive:
            assert archive.namelist().count('minecraft/iron_ingot.png') == 1
