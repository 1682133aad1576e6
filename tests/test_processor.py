# ABOUTME: Tests for per-record payload export
# ABOUTME: Validates saved/skipped/failed outcomes, payload layout, retry and cleanup on failure
"""Tests for the item processor"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from voyant_export.bag import BagAssembler
from voyant_export.exceptions import ExportIOError, ValidationError
from voyant_export.models import Creator, ItemStatus, Record
from voyant_export.processor import ItemProcessor
from voyant_export.retry import RetryPolicy


@pytest.fixture
def payload_root(tmp_path):
    bag_root = tmp_path / "bag"
    bag_root.mkdir()
    return BagAssembler(bag_root).assemble()


@pytest.fixture
def processor(payload_root):
    return ItemProcessor(payload_root, retry_policy=RetryPolicy(max_attempts=3, initial_delay=0))


class TestProcess:
    @pytest.mark.asyncio
    async def test_saved_item_writes_three_files(self, processor, payload_root, make_item, sample_record, content_file):
        outcome = await processor.process(make_item(sample_record, content_file))

        assert outcome.status is ItemStatus.SAVED
        assert outcome.record_id == "42"
        record_dir = payload_root / "42"
        assert sorted(p.name for p in record_dir.iterdir()) == ["CWRC.bin", "DC.xml", "MODS.bin"]
        assert (record_dir / "CWRC.bin").read_bytes() == content_file.read_bytes()
        assert (record_dir / "MODS.bin").read_bytes().startswith(b"<?xml")
        assert b"<dc:identifier>42</dc:identifier>" in (record_dir / "DC.xml").read_bytes()

    @pytest.mark.asyncio
    async def test_no_attachment_skips(self, processor, payload_root, make_item, sample_record):
        outcome = await processor.process(make_item(sample_record, None))
        assert outcome.status is ItemStatus.SKIPPED
        assert list(payload_root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_attachment_without_path_skips(self, processor, payload_root, make_item, sample_record):
        outcome = await processor.process(make_item(sample_record, ""))
        assert outcome.status is ItemStatus.SKIPPED
        assert "no file path" in outcome.reason

    @pytest.mark.asyncio
    async def test_missing_file_skips(self, processor, payload_root, make_item, sample_record, tmp_path):
        outcome = await processor.process(make_item(sample_record, tmp_path / "gone.pdf"))
        assert outcome.status is ItemStatus.SKIPPED
        assert not (payload_root / "42").exists()

    @pytest.mark.asyncio
    async def test_null_item_skips(self, processor):
        outcome = await processor.process(None)
        assert outcome.status is ItemStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_invalid_catalog_data_fails(self, processor, make_item):
        outcome = await processor.process(make_item(ValidationError("bad record")))
        assert outcome.status is ItemStatus.FAILED
        assert "bad record" in outcome.reason

    @pytest.mark.asyncio
    async def test_metadata_failure_leaves_no_directory(self, processor, payload_root, make_item, content_file):
        creator = Creator.model_construct(given_name="A", family_name="", role="")
        record = Record.model_construct(
            id="5", title="T", creators=[creator], tags=[], date=None,
            abstract_text=None, item_type=None, publisher=None, language=None, rights=None,
        )
        outcome = await processor.process(make_item(record, content_file))

        assert outcome.status is ItemStatus.FAILED
        assert "Metadata generation failed" in outcome.reason
        assert list(payload_root.iterdir()) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("record_id", ["", "..", "a/b"])
    async def test_unsafe_record_id_fails(self, processor, payload_root, make_item, content_file, record_id):
        outcome = await processor.process(make_item(Record(id=record_id), content_file))
        assert outcome.status is ItemStatus.FAILED
        assert list(payload_root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_duplicate_id_fails_second(self, processor, payload_root, make_item, sample_record, content_file):
        first = await processor.process(make_item(sample_record, content_file))
        second = await processor.process(make_item(sample_record, content_file))

        assert first.status is ItemStatus.SAVED
        assert second.status is ItemStatus.FAILED
        assert (payload_root / "42" / "CWRC.bin").exists()

    @pytest.mark.asyncio
    async def test_transient_write_error_is_retried(self, processor, payload_root, make_item, sample_record, content_file):
        from voyant_export import processor as processor_module

        real_copy = processor_module.copy_file
        calls = []

        def flaky_copy(source, target):
            calls.append(target)
            if len(calls) == 1:
                raise ExportIOError("transient")
            real_copy(source, target)

        with patch.object(processor_module, "copy_file", side_effect=flaky_copy):
            outcome = await processor.process(make_item(sample_record, content_file))

        assert outcome.status is ItemStatus.SAVED
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_exhausted_writes_remove_directory(self, processor, payload_root, make_item, sample_record, content_file):
        with patch(
            "voyant_export.processor.copy_file", side_effect=ExportIOError("disk full")
        ) as copy, patch("voyant_export.retry.asyncio.sleep", new_callable=AsyncMock):
            outcome = await processor.process(make_item(sample_record, content_file))

        assert outcome.status is ItemStatus.FAILED
        assert "disk full" in outcome.reason
        assert copy.call_count == 3
        assert not (payload_root / "42").exists()

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_failure(self, processor, make_item, sample_record):
        item = make_item(sample_record)
        item.get_best_attachment = AsyncMock(side_effect=RuntimeError("catalog exploded"))

        outcome = await processor.process(item)
        assert outcome.status is ItemStatus.FAILED
        assert outcome.record_id == "42"


class TestProcessAll:
    @pytest.mark.asyncio
    async def test_three_records_one_without_path(self, processor, payload_root, make_item, content_file):
        items = [
            make_item(Record(id="1", title="One"), content_file),
            make_item(Record(id="2", title="Two"), ""),
            make_item(Record(id="3", title="Three"), content_file),
        ]
        outcomes = await processor.process_all(items)

        assert [o.record_id for o in outcomes] == ["1", "2", "3"]
        assert [o.status for o in outcomes] == [ItemStatus.SAVED, ItemStatus.SKIPPED, ItemStatus.SAVED]
        assert sorted(p.name for p in payload_root.iterdir()) == ["1", "3"]

    @pytest.mark.asyncio
    async def test_broken_catalog_item_fails_alone(self, processor, payload_root, make_item, content_file):
        items = [
            make_item(Record(id="1"), content_file),
            make_item(RuntimeError("host item missing field"), content_file),
            make_item(Record(id="3"), content_file),
        ]
        outcomes = await processor.process_all(items)

        assert [o.status for o in outcomes] == [ItemStatus.SAVED, ItemStatus.FAILED, ItemStatus.SAVED]
        assert "host item missing field" in outcomes[1].reason
        assert sorted(p.name for p in payload_root.iterdir()) == ["1", "3"]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, payload_root, make_item, content_file):
        active = 0
        peak = 0

        class SlowAttachment:
            async def get_file_path(self):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                return content_file

        processor = ItemProcessor(payload_root, max_concurrency=2)
        items = [make_item(Record(id=str(n)), SlowAttachment()) for n in range(6)]
        outcomes = await processor.process_all(items)

        assert all(o.status is ItemStatus.SAVED for o in outcomes)
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_empty_list(self, processor):
        assert await processor.process_all([]) == []
