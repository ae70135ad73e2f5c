"""
Tag reading and album art handling for audio files.
"""

from .extractor import (
    AudioTags,
    EmbeddedPicture,
    MutagenTagReader,
    TagReader,
    audio_content_hash
)
from .album_art import AlbumArtCache, art_key, find_directory_art

__all__ = [
    "AudioTags",
    "EmbeddedPicture",
    "TagReader",
    "MutagenTagReader",
    "audio_content_hash",
    "AlbumArtCache",
    "art_key",
    "find_directory_art"
]
