import json
import shutil
import tempfile
from pathlib import Path

import pytest

from voyant_export.config import Config
from voyant_export.models import Creator, Record


@pytest.fixture
def temp_config_dir():
    """Create a temporary config directory for tests"""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def test_config(temp_config_dir):
    """Create a test config instance"""
    return Config(config_dir=temp_config_dir)


class FakeAttachment:
    def __init__(self, path):
        self.path = path

    async def get_file_path(self):
        return self.path


class FakeItem:
    """Catalog item double; attachment may be a path, None, or an Attachment."""

    def __init__(self, record, attachment=None):
        self.record = record
        self.attachment = attachment

    def to_record(self):
        if isinstance(self.record, Exception):
            raise self.record
        return self.record

    async def get_best_attachment(self):
        if self.attachment is None or hasattr(self.attachment, "get_file_path"):
            return self.attachment
        return FakeAttachment(self.attachment)


@pytest.fixture
def make_item():
    return FakeItem


@pytest.fixture
def sample_record():
    """A fully populated record"""
    return Record(
        id="42",
        title="The Waste Land",
        creators=[
            Creator(given_name="T. S.", family_name="Eliot", role="author"),
            Creator(given_name="Ezra", family_name="Pound", role="editor"),
        ],
        date="1922",
        abstract_text="A long poem in five sections.",
        item_type="book",
        publisher="Boni & Liveright",
        language="en",
        rights="Public domain",
        tags=["modernism", "poetry"],
    )


@pytest.fixture
def content_file(tmp_path):
    """A small binary attachment file"""
    path = tmp_path / "source" / "paper.pdf"
    path.parent.mkdir()
    path.write_bytes(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
    return path


@pytest.fixture
def library_file(tmp_path):
    """A JSON library with two collections and an attachment on disk"""
    files = tmp_path / "library" / "files"
    files.mkdir(parents=True)
    (files / "one.pdf").write_bytes(b"%PDF-1.4 one")
    (files / "three.txt").write_text("plain text content")
    library = {
        "collections": {
            "Modernism": [
                {
                    "id": "1",
                    "title": "Ulysses",
                    "creators": [{"given_name": "James", "family_name": "Joyce", "role": "author"}],
                    "date": "1922",
                    "item_type": "book",
                    "attachment": "files/one.pdf",
                },
                {"id": "2", "title": "No file here"},
                {
                    "id": "3",
                    "title": "Mrs Dalloway",
                    "creators": [{"given_name": "Virginia", "family_name": "Woolf", "role": "author"}],
                    "tags": ["novel"],
                    "attachment": "files/three.txt",
                },
            ],
            "Empty": [],
        }
    }
    path = tmp_path / "library" / "library.json"
    path.write_text(json.dumps(library))
    return path
