import pytest

from partwise.errors import TransferError
from partwise.schemas import EXPORTED, FAILED, ExportJob
from partwise.state.io import load_snapshot
from partwise.state.store import InMemoryModelStore, Item
from partwise.execute.transfer import (
    UNKNOWN_CATEGORY,
    chunked,
    export_group,
    prefilter,
    transfer_items,
)


@pytest.fixture()
def big_store():
    store = InMemoryModelStore(title="CMPP64_Model", partitions=["DX_HWS"])
    for item_id in range(1, 121):
        store.add_item(Item(id=item_id, category="pipe_curves", partition="DX_HWS"))
    return store


def test_chunked():
    assert chunked(list(range(5)), 2) == [[0, 1], [2, 3], [4]]
    assert chunked([], 50) == []


def test_prefilter_skip_reasons(store_factory, log):
    store = store_factory(
        items=[
            Item(id=1, category="pipe_curves"),
            Item(id=2, category="views"),
            Item(id=3, category=None),
            Item(id=4, category="pipe_curves", view_specific=True),
            Item(id=5, category="piping_system"),
        ],
        types=[Item(id=9, category="pipe_curves", is_type=True)],
    )

    valid, skipped = prefilter([1, 1, 2, 3, 4, 5, 9, 404, None, -1], store, log)

    assert valid == [1]
    assert skipped == {
        "views": 1,
        "no category": 1,
        "view specific": 1,
        "piping_system": 1,
        "type definition": 1,
        "invalid id": 3,
    }
    assert log.contains("Pre-filter kept 1")


def test_batch_transfer_when_nothing_fails(big_store):
    target = big_store.create_artifact()

    copied, failed = transfer_items(big_store, list(range(1, 121)), target)

    assert len(copied) == 120
    assert failed == {}


def test_failing_middle_chunk_falls_back_to_single_items(big_store, log):
    # ids 51-100 fail as a batch because two of them refuse to copy
    big_store.transfer_failures = {60: "pipe_curves", 75: None}
    target = big_store.create_artifact()

    copied, failed = transfer_items(big_store, list(range(1, 121)), target, chunk_size=50, log=log)

    assert set(copied) == set(range(1, 121)) - {60, 75}
    assert failed == {"pipe_curves": 2}
    assert len(target.items) == 118
    assert log.contains("Chunk 2/3 failed")


def test_failure_category_unknown_when_store_cannot_tell():
    class Refusing(InMemoryModelStore):
        def copy_items(self, item_ids, target):
            raise TransferError("refused")

    source = Refusing(items=[Item(id=1, category=None)])
    # bypass the pre-filter to reach the category fallback
    copied, failed = transfer_items(source, [1], source.create_artifact())

    assert copied == {}
    assert failed == {UNKNOWN_CATEGORY: 1}


def test_export_group_saves_artifact_with_partitions(big_store, tmp_path, log):
    big_store.transfer_failures = {7: "pipe_curves"}
    job = ExportJob(package="HWS", export_code="HWS", part_number=1,
                    file_name="CMPP64_HWS_MO_Part_001_DX.json", item_ids=list(range(1, 121)))

    result = export_group(big_store, job, tmp_path, log=log)

    assert result.status == EXPORTED
    assert result.requested == 120
    assert result.transferred == 119
    assert result.failed == {"pipe_curves": 1}

    saved = load_snapshot(tmp_path / job.file_name)
    assert saved.title == "CMPP64_HWS_MO_Part_001_DX"
    assert len(saved.items) == 119
    assert {i.partition for i in saved.items} == {"DX_HWS"}


def test_export_group_with_nothing_transferable(store_factory, tmp_path):
    store = store_factory(items=[Item(id=1, category="rooms")])
    job = ExportJob(package="QC", export_code="QC", part_number=1, file_name="x.json", item_ids=[1])

    result = export_group(store, job, tmp_path)

    assert result.status == FAILED
    assert result.skipped == {"rooms": 1}
    assert not (tmp_path / "x.json").exists()


def test_export_group_save_failure_is_reported(big_store, tmp_path):
    (tmp_path / "taken.json").write_text("{}", encoding="utf-8")
    job = ExportJob(package="HWS", export_code="HWS", part_number=1, file_name="taken.json", item_ids=[1, 2])

    result = export_group(big_store, job, tmp_path, overwrite=False)

    assert result.status == FAILED
    assert "overwrite is off" in result.error
    assert result.transferred == 2
