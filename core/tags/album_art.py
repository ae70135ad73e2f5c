"""
Album art discovery and per-run dedup.

Art comes either embedded in the audio file or from an ``AlbumArt*.jpg`` /
``AlbumArt*.png`` file next to it. Objects are keyed by the base64 SHA-256
of their bytes, so the same image shared by every track of an album is
uploaded once.
"""

import base64
import hashlib
import logging
import re
from pathlib import Path
from typing import Dict, Optional, Set, Tuple, Union

logger = logging.getLogger(__name__)

ALBUM_ART_PATTERN = re.compile(r"^AlbumArt.*\.(jpg|png)$", re.IGNORECASE)

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "png": "image/png",
}


def art_key(data: bytes) -> str:
    """Object-store key of an image: standard base64 of its SHA-256"""
    return base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")


def find_directory_art(directory: Union[str, Path]) -> Optional[Tuple[bytes, str]]:
    """
    Pick the largest ``AlbumArt*.jpg|png`` file in ``directory``.

    Args:
        directory: Directory holding the audio file

    Returns:
        Tuple of image bytes and content type, or None if there is no art
    """
    directory = Path(directory)
    best: Optional[Path] = None
    best_size = -1

    try:
        entries = list(directory.iterdir())
    except OSError as e:
        logger.warning(f"Cannot list {directory} for album art: {e}")
        return None

    for entry in entries:
        match = ALBUM_ART_PATTERN.match(entry.name)
        if not match:
            continue
        try:
            if not entry.is_file():
                continue
            size = entry.stat().st_size
        except OSError as e:
            logger.debug(f"Skipping {entry}: {e}")
            continue
        if size > best_size:
            best, best_size = entry, size

    if best is None:
        return None

    try:
        data = best.read_bytes()
    except OSError as e:
        logger.warning(f"Failed to read album art {best}: {e}")
        return None

    extension = ALBUM_ART_PATTERN.match(best.name).group(1).lower()
    return data, CONTENT_TYPES[extension]


class AlbumArtCache:
    """
    Process-local memory of album art already uploaded this run.

    Lookups by directory avoid rescanning a folder for every track of an
    album; lookups by key avoid re-uploading identical images. Only
    successful uploads are remembered.
    """

    def __init__(self):
        self._by_directory: Dict[str, str] = {}
        self._keys: Set[str] = set()

    def lookup_directory(self, directory: Union[str, Path]) -> Optional[str]:
        """Key of the art previously found in ``directory``"""
        return self._by_directory.get(str(directory))

    def contains(self, key: str) -> bool:
        """Whether an image with this key was already uploaded"""
        return key in self._keys

    def remember(self, key: str, directory: Optional[Union[str, Path]] = None) -> None:
        """Record an uploaded image, and the directory it came from if any"""
        self._keys.add(key)
        if directory is not None:
            self._by_directory[str(directory)] = key
