"""
Unit tests for tag extraction, the audio content hash and album art lookup.
"""

import base64
import hashlib
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from mutagen.id3 import ID3, APIC, COMM, TALB, TCOM, TDRC, TIT2, TPE1, TPE2, TPOS, TRCK
from mutagen.mp4 import MP4Cover, MP4Tags

from core.errors import TagReadError
from core.tags.album_art import AlbumArtCache, art_key, find_directory_art
from core.tags.extractor import MutagenTagReader, audio_content_hash


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def id3v2_header(size: int, footer: bool = False) -> bytes:
    synchsafe = bytes([(size >> 21) & 0x7F, (size >> 14) & 0x7F, (size >> 7) & 0x7F, size & 0x7F])
    return b"ID3" + bytes([4, 0, 0x10 if footer else 0]) + synchsafe


class TestAudioContentHash:
    """Test audio_content_hash()"""

    def test_unknown_format_hashes_everything(self):
        data = b"OggS" + b"\x00" * 100
        assert audio_content_hash(data) == sha1(data)

    def test_id3v2_header_skipped(self):
        audio = b"\xff\xfb" + b"\x01" * 200
        tagged = id3v2_header(20) + b"T" * 20 + audio
        retagged = id3v2_header(40) + b"X" * 40 + audio

        assert audio_content_hash(tagged) == sha1(audio)
        assert audio_content_hash(tagged) == audio_content_hash(retagged)

    def test_id3v2_footer_skipped(self):
        audio = b"\xff\xfb" + b"\x02" * 50
        data = id3v2_header(10, footer=True) + b"T" * 10 + b"3DI" + b"\x00" * 7 + audio
        assert audio_content_hash(data) == sha1(audio)

    def test_id3v1_trailer_skipped(self):
        audio = b"\xff\xfb" + b"\x03" * 300
        trailer = b"TAG" + b"t" * 125
        assert audio_content_hash(audio + trailer) == sha1(audio)
        assert audio_content_hash(id3v2_header(5) + b"xxxxx" + audio + trailer) == sha1(audio)

    def test_flac_metadata_blocks_skipped(self):
        streaminfo = b"\x00" + (34).to_bytes(3, "big") + b"s" * 34
        comment = b"\x84" + (6).to_bytes(3, "big") + b"vorbis"
        frames = b"\xff\xf8" + b"\x04" * 100
        data = b"fLaC" + streaminfo + comment + frames

        edited = b"fLaC" + streaminfo + b"\x84" + (9).to_bytes(3, "big") + b"retagged!" + frames
        assert audio_content_hash(data) == sha1(frames)
        assert audio_content_hash(edited) == sha1(frames)

    def test_mp4_hashes_only_mdat(self):
        def atom(kind: bytes, payload: bytes) -> bytes:
            return (8 + len(payload)).to_bytes(4, "big") + kind + payload

        payload = b"\x05" * 64
        data = atom(b"ftyp", b"M4A \x00\x00\x00\x00") + atom(b"moov", b"udta-1") + atom(b"mdat", payload)
        edited = atom(b"ftyp", b"M4A \x00\x00\x00\x00") + atom(b"moov", b"udta-longer") + atom(b"mdat", payload)

        assert audio_content_hash(data) == sha1(payload)
        assert audio_content_hash(edited) == audio_content_hash(data)

    def test_reader_reads_file(self, tmp_path):
        path = tmp_path / "x.ogg"
        path.write_bytes(b"OggS-data")
        assert MutagenTagReader().content_hash(path) == sha1(b"OggS-data")

    def test_reader_missing_file(self, tmp_path):
        with pytest.raises(TagReadError):
            MutagenTagReader().content_hash(tmp_path / "missing.mp3")


class TestMutagenTagReader:
    """Test MutagenTagReader field mapping"""

    def setup_method(self):
        self.reader = MutagenTagReader()

    def test_id3_fields(self):
        tags = ID3()
        tags.add(TIT2(encoding=3, text=["Help!"]))
        tags.add(TALB(encoding=3, text=["Help!"]))
        tags.add(TPE1(encoding=3, text=["The Beatles"]))
        tags.add(TPE2(encoding=3, text=["Beatles"]))
        tags.add(TCOM(encoding=3, text=["Lennon-McCartney"]))
        tags.add(TDRC(encoding=3, text=["1965-08-06"]))
        tags.add(TRCK(encoding=3, text=["1/14"]))
        tags.add(TPOS(encoding=3, text=["1/1"]))
        tags.add(COMM(encoding=3, lang="eng", desc="", text=["remaster"]))
        tags.add(APIC(encoding=3, mime="image/png", type=3, desc="cover", data=b"\x89PNG"))

        fields = self.reader._read_id3(tags)

        assert fields["format"] == "ID3v2.4"
        assert fields["title"] == "Help!"
        assert fields["artist"] == "The Beatles"
        assert fields["album_artist"] == "Beatles"
        assert fields["composer"] == "Lennon-McCartney"
        assert fields["year"] == 1965
        assert (fields["track"], fields["total_tracks"]) == (1, 14)
        assert (fields["disc"], fields["total_discs"]) == (1, 1)
        assert fields["comment"] == "remaster"
        assert fields["picture"].data == b"\x89PNG"
        assert fields["picture"].mime_type == "image/png"

    def test_id3_missing_fields_are_empty(self):
        fields = self.reader._read_id3(ID3())

        assert fields["title"] == ""
        assert fields["year"] == 0
        assert fields["track"] == 0
        assert fields["picture"] is None

    def test_mp4_fields(self):
        tags = MP4Tags()
        tags["\xa9nam"] = ["Yesterday"]
        tags["\xa9ART"] = ["The Beatles"]
        tags["aART"] = ["The Beatles"]
        tags["\xa9day"] = ["1965"]
        tags["trkn"] = [(13, 14)]
        tags["disk"] = [(1, 2)]
        tags["covr"] = [MP4Cover(b"\x89PNG", imageformat=MP4Cover.FORMAT_PNG)]

        fields = self.reader._read_mp4(tags)

        assert fields["format"] == "MP4"
        assert fields["title"] == "Yesterday"
        assert fields["album"] == ""
        assert fields["year"] == 1965
        assert (fields["track"], fields["total_tracks"]) == (13, 14)
        assert (fields["disc"], fields["total_discs"]) == (1, 2)
        assert fields["picture"].mime_type == "image/png"
        assert fields["picture"].data == b"\x89PNG"

    def test_vorbis_fields(self):
        tags = {
            "title": ["Hoppípolla"],
            "artist": ["Sigur Rós"],
            "albumartist": ["Sigur Rós"],
            "date": ["2005"],
            "tracknumber": ["2"],
            "tracktotal": ["11"],
        }
        audio = Mock(pictures=[])

        fields = self.reader._read_vorbis(audio, tags)

        assert fields["format"] == "VORBIS"
        assert fields["title"] == "Hoppípolla"
        assert fields["album_artist"] == "Sigur Rós"
        assert (fields["track"], fields["total_tracks"]) == (2, 11)
        assert fields["picture"] is None

    def test_read_uses_file_type_from_suffix_for_unknown_class(self, tmp_path):
        tags = ID3()
        tags.add(TIT2(encoding=3, text=["Song"]))
        with patch("core.tags.extractor.MutagenFile", return_value=Mock(tags=tags)):
            result = self.reader.read(tmp_path / "song.mp3")

        assert result.title == "Song"
        assert result.file_type == "MP3"
        assert result.format == "ID3v2.4"

    def test_read_unrecognized(self, tmp_path):
        with patch("core.tags.extractor.MutagenFile", return_value=None):
            with pytest.raises(TagReadError):
                self.reader.read(tmp_path / "x.bin")

    def test_read_without_tags(self, tmp_path):
        with patch("core.tags.extractor.MutagenFile", return_value=Mock(tags=None)):
            with pytest.raises(TagReadError):
                self.reader.read(tmp_path / "x.mp3")

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(TagReadError):
            self.reader.read(tmp_path / "missing.mp3")


class TestAlbumArt:
    """Test album art helpers"""

    def test_art_key_is_base64_sha256(self):
        data = b"image bytes"
        expected = base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")
        assert art_key(data) == expected
        assert len(art_key(data)) == 44

    def test_picks_largest_matching_file(self, tmp_path):
        (tmp_path / "AlbumArtSmall.jpg").write_bytes(b"s" * 10)
        (tmp_path / "albumart_large.PNG").write_bytes(b"L" * 100)
        (tmp_path / "cover.jpg").write_bytes(b"c" * 1000)
        (tmp_path / "AlbumArt.gif").write_bytes(b"g" * 1000)

        data, content_type = find_directory_art(tmp_path)

        assert data == b"L" * 100
        assert content_type == "image/png"

    def test_jpeg_content_type(self, tmp_path):
        (tmp_path / "AlbumArt_{ABC}_Large.jpg").write_bytes(b"jpeg")
        assert find_directory_art(tmp_path) == (b"jpeg", "image/jpeg")

    def test_no_art(self, tmp_path):
        (tmp_path / "folder.jpg").write_bytes(b"x")
        assert find_directory_art(tmp_path) is None

    def test_missing_directory(self, tmp_path):
        assert find_directory_art(tmp_path / "missing") is None

    def test_cache(self, tmp_path):
        cache = AlbumArtCache()
        assert cache.lookup_directory(tmp_path) is None
        assert not cache.contains("k1")

        cache.remember("k1", tmp_path)
        cache.remember("k2")

        assert cache.lookup_directory(tmp_path) == "k1"
        assert cache.lookup_directory(str(tmp_path)) == "k1"
        assert cache.contains("k2")
        assert not cache.contains("k3")
