"""
Tag extraction using mutagen.

Reads the structural tag fields and the embedded picture of ID3 (MP3),
MP4 (M4A) and Vorbis comment (FLAC, Ogg) files, and computes a checksum
of the audio payload that does not change when only the tags are edited.
"""

import base64
import binascii
import hashlib
import logging
import struct
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator, Optional, Tuple

from mutagen import File as MutagenFile, MutagenError
from mutagen.flac import Picture
from mutagen.id3 import ID3
from mutagen.mp4 import MP4Cover, MP4Tags
from pydantic import BaseModel, ConfigDict

from ..errors import TagReadError

logger = logging.getLogger(__name__)

# mutagen class name -> file type
FILE_TYPES = {
    "MP3": "MP3",
    "EasyMP3": "MP3",
    "MP4": "M4A",
    "EasyMP4": "M4A",
    "FLAC": "FLAC",
    "OggVorbis": "OGG",
    "OggOpus": "OGG",
    "OggFLAC": "OGG",
}

# APIC / FLAC picture type of a front cover
FRONT_COVER = 3


class EmbeddedPicture(BaseModel):
    """Image data stored inside the audio file's tags"""
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/jpeg"


class AudioTags(BaseModel):
    """Structural tag fields of one audio file"""
    model_config = ConfigDict(frozen=True)

    format: str = ""
    file_type: str = ""
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
    picture: Optional[EmbeddedPicture] = None


class TagReader(ABC):
    """Reads tags and the content hash of audio files"""

    @abstractmethod
    def read(self, path: Path) -> AudioTags:
        """
        Read the tags of ``path``.

        Raises:
            TagReadError: If the file is unreadable or carries no tags
        """

    @abstractmethod
    def content_hash(self, path: Path) -> str:
        """
        Checksum of the audio payload of ``path``.

        Raises:
            TagReadError: If the file is unreadable
        """


def _parse_number_pair(value: str) -> Tuple[int, int]:
    """Parse 'number/total' format (e.g., '5/12')"""
    if not value:
        return 0, 0
    number, _, total = value.partition("/")
    return _parse_int(number), _parse_int(total)


def _parse_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def _extract_year(date_str: str) -> int:
    """Extract year from a YYYY, YYYY-MM or YYYY-MM-DD string"""
    year = _parse_int(date_str.strip()[:4])
    return year if 1000 <= year <= 9999 else 0


class MutagenTagReader(TagReader):
    """TagReader for the containers mutagen understands"""

    def read(self, path: Path) -> AudioTags:
        try:
            audio = MutagenFile(str(path))
        except (MutagenError, OSError) as e:
            raise TagReadError(f"Failed to read tags of {path}: {e}") from e

        if audio is None:
            raise TagReadError(f"Unrecognized audio format: {path}")
        if audio.tags is None:
            raise TagReadError(f"No tags found in {path}")

        file_type = FILE_TYPES.get(type(audio).__name__, Path(path).suffix.lstrip(".").upper())
        tags = audio.tags

        if isinstance(tags, ID3):
            fields = self._read_id3(tags)
        elif isinstance(tags, MP4Tags):
            fields = self._read_mp4(tags)
        else:
            fields = self._read_vorbis(audio, tags)

        return AudioTags(file_type=file_type, **fields)

    def content_hash(self, path: Path) -> str:
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise TagReadError(f"Failed to read {path}: {e}") from e
        return audio_content_hash(data)

    def _read_id3(self, tags: ID3) -> dict:
        def text(frame_id: str) -> str:
            for frame in tags.getall(frame_id):
                if frame.text:
                    return str(frame.text[0]).strip()
            return ""

        track, total_tracks = _parse_number_pair(text("TRCK"))
        disc, total_discs = _parse_number_pair(text("TPOS"))

        picture = None
        pictures = tags.getall("APIC")
        if pictures:
            covers = [p for p in pictures if p.type == FRONT_COVER]
            apic = (covers or pictures)[0]
            picture = EmbeddedPicture(data=apic.data, mime_type=apic.mime or "image/jpeg")

        return {
            "format": f"ID3v2.{tags.version[1]}",
            "title": text("TIT2"),
            "album": text("TALB"),
            "artist": text("TPE1"),
            "album_artist": text("TPE2"),
            "composer": text("TCOM"),
            "genre": text("TCON"),
            "year": _extract_year(text("TDRC")),
            "track": track,
            "total_tracks": total_tracks,
            "disc": disc,
            "total_discs": total_discs,
            "comment": text("COMM"),
            "picture": picture,
        }

    def _read_mp4(self, tags: MP4Tags) -> dict:
        def text(key: str) -> str:
            values = tags.get(key)
            return str(values[0]).strip() if values else ""

        def pair(key: str) -> Tuple[int, int]:
            values = tags.get(key)
            if not values:
                return 0, 0
            number, total = values[0]
            return number, total

        track, total_tracks = pair("trkn")
        disc, total_discs = pair("disk")

        picture = None
        covers = tags.get("covr")
        if covers:
            cover = covers[0]
            mime_type = "image/png" if cover.imageformat == MP4Cover.FORMAT_PNG else "image/jpeg"
            picture = EmbeddedPicture(data=bytes(cover), mime_type=mime_type)

        return {
            "format": "MP4",
            "title": text("\xa9nam"),
            "album": text("\xa9alb"),
            "artist": text("\xa9ART"),
            "album_artist": text("aART"),
            "composer": text("\xa9wrt"),
            "genre": text("\xa9gen"),
            "year": _extract_year(text("\xa9day")),
            "track": track,
            "total_tracks": total_tracks,
            "disc": disc,
            "total_discs": total_discs,
            "comment": text("\xa9cmt"),
            "picture": picture,
        }

    def _read_vorbis(self, audio: Any, tags: Any) -> dict:
        def text(*keys: str) -> str:
            for key in keys:
                values = tags.get(key)
                if values:
                    return str(values[0]).strip()
            return ""

        track, total_tracks = _parse_number_pair(text("tracknumber"))
        disc, total_discs = _parse_number_pair(text("discnumber"))

        return {
            "format": "VORBIS",
            "title": text("title"),
            "album": text("album"),
            "artist": text("artist"),
            "album_artist": text("albumartist", "album artist"),
            "composer": text("composer"),
            "genre": text("genre"),
            "year": _extract_year(text("date", "year")),
            "track": track,
            "total_tracks": total_tracks or _parse_int(text("tracktotal", "totaltracks")),
            "disc": disc,
            "total_discs": total_discs or _parse_int(text("disctotal", "totaldiscs")),
            "comment": text("comment", "description"),
            "picture": self._vorbis_picture(audio, tags),
        }

    def _vorbis_picture(self, audio: Any, tags: Any) -> Optional[EmbeddedPicture]:
        pictures = list(getattr(audio, "pictures", None) or [])
        # Ogg streams carry pictures as base64 FLAC picture blocks
        for encoded in tags.get("metadata_block_picture") or []:
            try:
                pictures.append(Picture(base64.b64decode(encoded)))
            except (binascii.Error, MutagenError, ValueError) as e:
                logger.debug(f"Skipping malformed embedded picture: {e}")

        if not pictures:
            return None
        covers = [p for p in pictures if p.type == FRONT_COVER]
        picture = (covers or pictures)[0]
        return EmbeddedPicture(data=picture.data, mime_type=picture.mime or "image/jpeg")


def audio_content_hash(data: bytes) -> str:
    """
    SHA-1 hex digest of the audio payload of an encoded file.

    Tag containers are excluded so that editing tags keeps the hash stable:
    the ID3v2 header and ID3v1 trailer of MP3s, the metadata blocks of FLAC,
    and everything but the ``mdat`` atoms of MP4. Other formats hash the
    whole file.
    """
    digest = hashlib.sha1()

    if data[:4] == b"fLaC":
        digest.update(data[_flac_audio_offset(data):])
    elif data[4:8] == b"ftyp":
        for start, end in _mp4_atoms(data, b"mdat"):
            digest.update(data[start:end])
    elif data[:3] == b"ID3" or data[-128:-125] == b"TAG":
        start = _id3v2_size(data) if data[:3] == b"ID3" else 0
        end = len(data) - 128 if len(data) - start >= 128 and data[-128:-125] == b"TAG" else len(data)
        digest.update(data[start:end])
    else:
        digest.update(data)

    return digest.hexdigest()


def _id3v2_size(data: bytes) -> int:
    """Total length of a leading ID3v2 tag, header and footer included"""
    if len(data) < 10:
        return len(data)
    size = 0
    for byte in data[6:10]:
        size = (size << 7) | (byte & 0x7F)
    size += 10
    if data[5] & 0x10:
        size += 10
    return min(size, len(data))


def _flac_audio_offset(data: bytes) -> int:
    """Offset of the first audio frame after the FLAC metadata blocks"""
    offset = 4
    while offset + 4 <= len(data):
        header = data[offset]
        length = int.from_bytes(data[offset + 1:offset + 4], "big")
        offset += 4 + length
        if header & 0x80:
            break
    return min(offset, len(data))


def _mp4_atoms(data: bytes, atom_type: bytes) -> Iterator[Tuple[int, int]]:
    """Yield (start, end) payload bounds of top-level atoms of ``atom_type``"""
    offset = 0
    while offset + 8 <= len(data):
        size, kind = struct.unpack(">I4s", data[offset:offset + 8])
        header = 8
        if size == 1:
            if offset + 16 > len(data):
                break
            size = struct.unpack(">Q", data[offset + 8:offset + 16])[0]
            header = 16
        elif size == 0:
            size = len(data) - offset
        if size < header:
            logger.debug(f"Corrupt MP4 atom at offset {offset}")
            break
        if kind == atom_type:
            yield offset + header, min(offset + size, len(data))
        offset += size
