# ABOUTME: Tests for BagIt skeleton creation and bag validation
# ABOUTME: Covers the declaration content, payload root, and directory/ZIP validation
"""Tests for BagIt packaging"""

import zipfile
from unittest.mock import patch

import pytest

from voyant_export.bag import (
    BAGIT_DECLARATION,
    BagAssembler,
    create_payload_root,
    validate_bag,
    write_declaration,
)
from voyant_export.exceptions import BagError, ExportIOError


def make_record_dir(payload_root, record_id, files=("MODS.bin", "DC.xml", "CWRC.bin")):
    record_dir = payload_root / record_id
    record_dir.mkdir()
    for name in files:
        (record_dir / name).write_bytes(b"x")
    return record_dir


class TestWriteDeclaration:
    def test_exact_bytes(self, tmp_path):
        path = write_declaration(tmp_path)
        assert path == tmp_path / "bagit.txt"
        assert path.read_bytes() == b"BagIt-Version: 0.97\nTag-File-Character-Encoding: UTF-8\n"

    def test_write_failure(self, tmp_path):
        with patch("voyant_export.bag.atomic_write", side_effect=ExportIOError("read-only")):
            with pytest.raises(BagError):
                write_declaration(tmp_path)


class TestPayloadRoot:
    def test_created(self, tmp_path):
        path = create_payload_root(tmp_path)
        assert path == tmp_path / "data"
        assert path.is_dir()

    def test_existing_is_an_error(self, tmp_path):
        (tmp_path / "data").mkdir()
        with pytest.raises(BagError):
            create_payload_root(tmp_path)


class TestBagAssembler:
    def test_assemble(self, tmp_path):
        payload_root = BagAssembler(tmp_path).assemble()
        assert payload_root == tmp_path / "data"
        assert (tmp_path / "bagit.txt").read_text() == BAGIT_DECLARATION
        assert list(payload_root.iterdir()) == []


class TestValidateBag:
    def test_valid_directory(self, tmp_path):
        payload_root = BagAssembler(tmp_path).assemble()
        make_record_dir(payload_root, "1")
        make_record_dir(payload_root, "2")
        assert validate_bag(tmp_path) == []

    def test_empty_bag_is_valid(self, tmp_path):
        BagAssembler(tmp_path).assemble()
        assert validate_bag(tmp_path) == []

    def test_missing_declaration_and_data(self, tmp_path):
        problems = validate_bag(tmp_path)
        assert "missing bagit.txt" in problems
        assert "missing data/ payload directory" in problems

    def test_wrong_declaration(self, tmp_path):
        BagAssembler(tmp_path).assemble()
        (tmp_path / "bagit.txt").write_text("BagIt-Version: 1.0\n")
        assert validate_bag(tmp_path) == ["bagit.txt does not contain the expected declaration"]

    def test_incomplete_record(self, tmp_path):
        payload_root = BagAssembler(tmp_path).assemble()
        make_record_dir(payload_root, "7", files=("MODS.bin", "notes.txt"))
        problems = validate_bag(tmp_path)
        assert "record 7 is missing CWRC.bin, DC.xml" in problems
        assert "record 7 has unexpected files notes.txt" in problems

    def test_valid_zip_without_directory_entries(self, tmp_path):
        archive = tmp_path / "bag.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("bagit.txt", BAGIT_DECLARATION)
            for name in ("MODS.bin", "DC.xml", "CWRC.bin"):
                zf.writestr(f"data/1/{name}", b"x")
        assert validate_bag(archive) == []

    def test_not_a_bag(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        assert validate_bag(path) == [f"{path} is neither a directory nor a ZIP archive"]
