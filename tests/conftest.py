"""
Shared fixtures for benten tests.

Audio files in tests are JSON documents read by JsonTagReader: the "tags"
object becomes the AudioTags and the "audio" string stands in for the
audio payload the content hash is computed from.
"""

import base64
import hashlib
import json
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

from config.defaults import ENV_VAR_MAPPING
from core.errors import TagReadError
from core.models.config import BentenConfig
from core.storage import FileSystemBlobStore, SQLiteDocumentStore
from core.tags import AudioTags, EmbeddedPicture, TagReader


class JsonTagReader(TagReader):
    """TagReader over JSON stand-ins for audio files"""

    def _load(self, path: Path) -> Dict[str, Any]:
        try:
            doc = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise TagReadError(f"Failed to read {path}: {e}") from e
        if not isinstance(doc, dict):
            raise TagReadError(f"Not a track: {path}")
        return doc

    def read(self, path: Path) -> AudioTags:
        doc = self._load(path)
        picture = None
        if doc.get("picture"):
            picture = EmbeddedPicture(
                data=base64.b64decode(doc["picture"]),
                mime_type=doc.get("picture_mime", "image/jpeg")
            )
        return AudioTags(format="TEST", file_type="MP3", picture=picture, **doc.get("tags", {}))

    def content_hash(self, path: Path) -> str:
        doc = self._load(path)
        return hashlib.sha1(doc.get("audio", "").encode("utf-8")).hexdigest()


def write_track(
    path: Path,
    audio: str = "audio",
    picture: Optional[bytes] = None,
    picture_mime: str = "image/jpeg",
    **tags: Any
) -> Path:
    """Write a JSON stand-in for an audio file"""
    path.parent.mkdir(parents=True, exist_ok=True)
    doc: Dict[str, Any] = {"audio": audio, "tags": tags}
    if picture is not None:
        doc["picture"] = base64.b64encode(picture).decode("ascii")
        doc["picture_mime"] = picture_mime
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Keep BENTEN_* overrides from the developer shell out of the tests"""
    for env_var in ENV_VAR_MAPPING:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.delenv("BENTEN_CONFIG_FILE", raising=False)


@pytest.fixture
def tag_reader() -> JsonTagReader:
    return JsonTagReader()


@pytest.fixture
def library(tmp_path) -> Path:
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def store(tmp_path) -> SQLiteDocumentStore:
    return SQLiteDocumentStore(tmp_path / "state" / "benten.sqlite3", timeout=5.0)


@pytest.fixture
def blobs(tmp_path) -> FileSystemBlobStore:
    return FileSystemBlobStore(tmp_path / "blobs")


@pytest.fixture
def config(tmp_path, library) -> BentenConfig:
    return BentenConfig(
        target=library,
        database_path=tmp_path / "state" / "benten.sqlite3",
        blob_root=tmp_path / "blobs",
        settle_window_s=0.05,
        operation_timeout_s=5.0
    )


@pytest.fixture
def make_track():
    """Factory writing JSON track files"""
    return write_track
