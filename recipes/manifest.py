"""
Modpack fingerprinting from local pack metadata.

Supports CurseForge manifest.json and Modrinth/packwiz pack.toml. Both the
game directory and its parent are searched, since instance-based launchers
keep the manifest one level above the game directory.
"""

import json
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from common.hashing import compute_entries_hash
from common.logging_config import get_logger

logger = get_logger(__name__)

CURSEFORGE_MANIFEST = "manifest.json"
MODRINTH_MANIFEST = "pack.toml"


@dataclass(frozen=True)
class ManifestHash:
    hash: str
    format: str
    mod_count: int


def _search_dirs(game_dir: Path) -> Iterator[Path]:
    game_dir = Path(game_dir)
    yield game_dir
    if game_dir.parent != game_dir:
        yield game_dir.parent


def _load_json(path: Path) -> Optional[dict]:
    if not path.is_file():
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        logger.debug(f"Failed to parse {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


def _load_toml(path: Path) -> Optional[dict]:
    if not path.is_file():
        return None
    try:
        with open(path, 'rb') as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
        logger.debug(f"Failed to parse {path}: {e}")
        return None


def curseforge_entries(directory: Path) -> List[str]:
    """Entries of the form "projectID:fileID" from manifest.json."""
    data = _load_json(directory / CURSEFORGE_MANIFEST)
    if not data or not isinstance(data.get("files"), list):
        return []
    entries = []
    for file_entry in data["files"]:
        if not isinstance(file_entry, dict):
            continue
        try:
            entries.append(f"{int(file_entry['projectID'])}:{int(file_entry['fileID'])}")
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping malformed manifest entry: {file_entry}")
    return entries


def modrinth_entries(directory: Path) -> List[str]:
    """Entries from pack.toml [[files]] tables, using hash when present, else path."""
    data = _load_toml(directory / MODRINTH_MANIFEST)
    if not data or not isinstance(data.get("files"), list):
        return []
    entries = []
    for file_entry in data["files"]:
        if not isinstance(file_entry, dict):
            continue
        value = file_entry.get("hash") or file_entry.get("path")
        if value:
            entries.append(str(value))
    return entries


_FORMATS: List[tuple] = [
    ("curseforge", curseforge_entries),
    ("modrinth", modrinth_entries),
]


def compute_manifest_hash(game_dir: Path) -> Optional[ManifestHash]:
    """
    Fingerprint the installed modpack.

    Args:
        game_dir: Game (instance) directory

    Returns:
        ManifestHash, or None when no usable manifest exists
    """
    for directory in _search_dirs(game_dir):
        for format_name, reader in _FORMATS:
            entries = reader(directory)
            content_hash = compute_entries_hash(entries)
            if content_hash is not None:
                logger.info(f"Computed manifest hash from {directory} ({format_name}): {content_hash} ({len(entries)} mods)")
                return ManifestHash(hash=content_hash, format=format_name, mod_count=len(entries))

    logger.debug("Could not compute manifest hash - no manifest file found")
    return None


def _curseforge_version(directory: Path) -> Optional[str]:
    data = _load_json(directory / CURSEFORGE_MANIFEST)
    version = data.get("version") if data else None
    return str(version).strip() if version else None


def _modrinth_version(directory: Path) -> Optional[str]:
    data = _load_toml(directory / MODRINTH_MANIFEST)
    version = data.get("version") if data else None
    return str(version).strip() if version else None


_VERSION_READERS: List[Callable[[Path], Optional[str]]] = [_curseforge_version, _modrinth_version]


def detect_version(game_dir: Path) -> Optional[str]:
    """
    Detect the modpack version from local manifests.

    Args:
        game_dir: Game (instance) directory

    Returns:
        Version string, or None if none found
    """
    for directory in _search_dirs(game_dir):
        for reader in _VERSION_READERS:
            version = reader(directory)
            if version:
                logger.info(f"Detected modpack version {version} from {directory}")
                return version

    logger.debug("Could not detect modpack version")
    return None


def get_effective_version(game_dir: Optional[Path], override: Optional[str] = None) -> Optional[str]:
    """
    Resolve the version to sync, preferring a configured override.

    Args:
        game_dir: Game directory to search, or None to skip detection
        override: Configured version override

    Returns:
        Version string, or None if neither is available
    """
    if override and override.strip():
        logger.info(f"Using version override from config: {override.strip()}")
        return override.strip()
    if game_dir is None:
        return None
    return detect_version(game_dir)
