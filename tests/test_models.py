# ABOUTME: Tests for record, creator and outcome models
# ABOUTME: Validates pydantic normalization rules and export tallies
"""Tests for data models"""

import pytest
from pydantic import ValidationError

from voyant_export.models import (
    Creator,
    ExportJob,
    ExportReport,
    ItemOutcome,
    ItemStatus,
    Record,
)


class TestCreator:
    def test_full_name_with_given_name(self):
        creator = Creator(given_name="Lucy Maud", family_name="Montgomery", role="author")
        assert creator.full_name == "Lucy Maud Montgomery"

    def test_full_name_family_only(self):
        assert Creator(family_name="Homer").full_name == "Homer"
        assert Creator(given_name="   ", family_name="Homer").full_name == "Homer"

    def test_empty_family_name_rejected(self):
        with pytest.raises(ValidationError):
            Creator(given_name="Anon", family_name="  ")

    def test_none_role_becomes_empty(self):
        assert Creator(family_name="Woolf", role=None).role == ""


class TestRecord:
    def test_defaults(self):
        record = Record(id="1")
        assert record.title == ""
        assert record.creators == []
        assert record.tags == []
        assert record.date is None

    def test_int_id_stringified(self):
        assert Record(id=7).id == "7"

    def test_blank_optional_fields_are_none(self):
        record = Record(id="1", title=None, date=" ", publisher="", tags=None)
        assert record.title == ""
        assert record.date is None
        assert record.publisher is None
        assert record.tags == []

    def test_frozen(self):
        record = Record(id="1", title="A")
        with pytest.raises(ValidationError):
            record.title = "B"

    def test_nested_creators_from_dicts(self):
        record = Record.model_validate(
            {"id": "1", "creators": [{"given_name": "Ada", "family_name": "Lovelace"}]}
        )
        assert record.creators[0].full_name == "Ada Lovelace"


class TestExportJob:
    def test_tally(self, tmp_path):
        job = ExportJob(output_path=tmp_path / "out.zip", temp_root=tmp_path)
        for status in [ItemStatus.SAVED, ItemStatus.SAVED, ItemStatus.SKIPPED, ItemStatus.FAILED]:
            job.tally(ItemOutcome(record_id="x", status=status))

        assert job.success_count == 2
        assert job.skip_count == 1
        assert job.failure_count == 1


class TestExportReport:
    def test_archived(self, tmp_path):
        assert ExportReport(output_path=tmp_path / "a.zip").archived
        assert not ExportReport().archived
        assert not ExportReport(output_path=tmp_path / "a.zip", cancelled=True).archived
