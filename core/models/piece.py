"""
Piece and index models for the audio library.

A Piece is the stored metadata of one audio track; an IndexEntry maps one
gram of its searchable text to the Piece identity.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


SEARCHABLE_FIELDS = ("title", "album", "artist", "album_artist")
"""Fields a query phrase is matched against."""

INDEXED_FIELDS = SEARCHABLE_FIELDS + ("composer",)
"""Fields that contribute grams to the index."""


class Piece(BaseModel):
    """Metadata of a single audio track"""
    model_config = ConfigDict(frozen=True)

    # Tag container and file type, e.g. "ID3v2.4" / "MP3"
    format: str = ""
    file_type: str = ""

    # Structural tag fields
    title: str = ""
    album: str = ""
    artist: str = ""
    album_artist: str = ""
    composer: str = ""
    genre: str = ""
    year: int = 0
    track: int = 0
    total_tracks: int = 0
    disc: int = 0
    total_discs: int = 0
    comment: str = ""

    # Object-store key of the album art, or empty
    picture: str = ""

    # Metadata-invariant checksum of the audio payload
    hash: str

    # Identity of the file in the source tree
    path: str

    @field_validator('hash', 'path')
    @classmethod
    def validate_identity(cls, v: str) -> str:
        """Hash and path identify the piece and cannot be empty"""
        if not v:
            raise ValueError('Piece hash and path cannot be empty')
        return v

    def searchable_text(self) -> Dict[str, str]:
        """Fields matched against a query phrase"""
        return {name: getattr(self, name) for name in SEARCHABLE_FIELDS}

    def indexed_text(self) -> Dict[str, str]:
        """Fields whose grams are written to the index"""
        return {name: getattr(self, name) for name in INDEXED_FIELDS}

    def __str__(self) -> str:
        return f"{self.artist or '?'} - {self.title or '?'} ({self.path})"


class StoredPiece(BaseModel):
    """A Piece together with its store-assigned identity"""
    model_config = ConfigDict(frozen=True)

    id: int
    piece: Piece

    def to_dict(self) -> Dict[str, Any]:
        """Flatten for JSON responses"""
        return {"id": self.id, **self.piece.model_dump()}


class IndexEntry(BaseModel):
    """Association of one gram with the identity of a Piece"""
    model_config = ConfigDict(frozen=True)

    key: bytes
    value: int
    id: Optional[int] = Field(default=None, description="Store-assigned identity of the entry")

    @field_validator('key')
    @classmethod
    def validate_key(cls, v: bytes) -> bytes:
        """Grams are 4 or 6 bytes wide"""
        if len(v) not in (4, 6):
            raise ValueError(f'Index key must be 4 or 6 bytes, got {len(v)}')
        return v
