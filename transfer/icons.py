"""
Icon bundle manifest and packaging for the "icons" upload type.

An icon directory holds the exported image files plus icon-metadata.json,
which maps item ids to their file and animation details. The bundle sent
to the server is a ZIP archive with the manifest first, then every icon
file the manifest references.
"""

import io
import json
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple

from common.exceptions import ConfigurationError
from common.logging_config import get_logger
from recipes.serializer import to_pretty_json

logger = get_logger(__name__)

ICON_METADATA_FILENAME = "icon-metadata.json"


@dataclass(frozen=True)
class IconEntry:
    """
    File and animation details for one item icon.

    Attributes:
        filename: Path of the image inside the bundle (e.g. "minecraft/iron_ingot.png")
        animated: Whether the image holds several frames
        frame_count: Number of frames (1 for static icons)
        frame_time_ms: Milliseconds per frame (0 for static icons)
    """
    filename: str
    animated: bool = False
    frame_count: int = 1
    frame_time_ms: int = 0

    def __post_init__(self):
        if not self.filename:
            raise ValueError("Icon filename must not be empty")
        if self.frame_count < 1:
            raise ValueError(f"frame_count must be at least 1, got {self.frame_count}")
        if self.frame_time_ms < 0:
            raise ValueError(f"frame_time_ms must not be negative, got {self.frame_time_ms}")

    @classmethod
    def static_icon(cls, filename: str) -> 'IconEntry':
        return cls(filename=filename)

    @classmethod
    def animated_icon(cls, filename: str, frame_count: int, frame_time_ms: int) -> 'IconEntry':
        return cls(filename=filename, animated=True, frame_count=frame_count, frame_time_ms=frame_time_ms)

    def to_json_map(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "animated": self.animated,
            "frameCount": self.frame_count,
            "frameTimeMs": self.frame_time_ms,
        }

    @classmethod
    def from_json_map(cls, data: Dict[str, Any]) -> 'IconEntry':
        return cls(
            filename=data["filename"],
            animated=bool(data.get("animated", False)),
            frame_count=int(data.get("frameCount", 1)),
            frame_time_ms=int(data.get("frameTimeMs", 0)),
        )


class IconMetadata:
    """Maps item ids to icon entries, in insertion order."""

    def __init__(self):
        self._icons: Dict[str, IconEntry] = {}

    def add_icon(self, item_id: str, entry: IconEntry) -> None:
        self._icons[item_id] = entry

    def add_static_icon(self, item_id: str, filename: str) -> None:
        self.add_icon(item_id, IconEntry.static_icon(filename))

    def add_animated_icon(self, item_id: str, filename: str, frame_count: int, frame_time_ms: int) -> None:
        self.add_icon(item_id, IconEntry.animated_icon(filename, frame_count, frame_time_ms))

    @property
    def icons(self) -> Dict[str, IconEntry]:
        return dict(self._icons)

    @property
    def animated_count(self) -> int:
        return sum(1 for entry in self._icons.values() if entry.animated)

    def __len__(self) -> int:
        return len(self._icons)

    def __iter__(self) -> Iterator[Tuple[str, IconEntry]]:
        return iter(self._icons.items())

    def to_json(self) -> str:
        return to_pretty_json({item_id: entry.to_json_map() for item_id, entry in self._icons.items()})

    @classmethod
    def from_json(cls, text: str) -> 'IconMetadata':
        """
        Parse icon-metadata.json content.

        Raises:
            ValueError: If the JSON is malformed or an entry is invalid
        """
        parsed = json.loads(text)
        metadata = cls()
        if parsed is None:
            return metadata
        if not isinstance(parsed, dict):
            raise ValueError("Icon metadata must be a JSON object keyed by item id")
        for item_id, entry in parsed.items():
            if not isinstance(entry, dict) or "filename" not in entry:
                raise ValueError(f"Icon entry for {item_id} has no filename")
            metadata.add_icon(item_id, IconEntry.from_json_map(entry))
        return metadata


def load_icon_metadata(icon_dir: Path) -> IconMetadata:
    """
    Read the manifest of an exported icon directory.

    Raises:
        ConfigurationError: If the manifest is missing or invalid
    """
    path = Path(icon_dir) / ICON_METADATA_FILENAME
    try:
        return IconMetadata.from_json(path.read_text(encoding='utf-8'))
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e.strerror or e}")
    except (ValueError, KeyError, TypeError) as e:
        raise ConfigurationError(f"Invalid icon metadata in {path}: {e}")


def build_icon_bundle(icon_dir: Path, metadata: IconMetadata) -> bytes:
    """
    Package an icon directory as a ZIP archive.

    Icons the manifest references but the directory lacks are skipped with
    a warning; the manifest is written unchanged.

    Args:
        icon_dir: Directory holding the icon files
        metadata: Manifest describing the icons

    Returns:
        ZIP archive bytes
    """
    icon_dir = Path(icon_dir)
    buffer = io.BytesIO()
    missing = 0

    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(ICON_METADATA_FILENAME, metadata.to_json())
        written = set()
        for item_id, entry in metadata:
            if entry.filename in written:
                continue
            source = icon_dir / entry.filename
            if not source.is_file():
                missing += 1
                logger.warning(f"Icon file for {item_id} not found: {entry.filename}")
                continue
            archive.write(source, entry.filename)
            written.add(entry.filename)

    logger.info(
        f"Built icon bundle: {len(metadata)} icons ({metadata.animated_count} animated), "
        f"{missing} missing, {buffer.tell()} bytes"
    )
    return buffer.getvalue()
