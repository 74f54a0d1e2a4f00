import json

import pytest

from conftest import duct, make_rule

from partwise.execute.executor import execute_exports
from partwise.execute.journaling import RunLog, get_journal
from partwise.pipeline import (
    EXTRACTION_LOG_NAME,
    ORGANIZE_LOG_NAME,
    organize_files,
    run_extraction,
    run_organize,
)
from partwise.schemas import EXPORTED, SKIPPED, ExportJob, RunConfig
from partwise.state.io import load_snapshot, write_snapshot
from partwise.state.store import Item

HWS_RULES = [make_rule("HW_Supply_01", "HWS-xxx", "Hot Water Supply", "HWS")]


@pytest.fixture()
def quiet_log():
    return RunLog(echo=False)


@pytest.fixture()
def saved_store(tmp_path, hws_store):
    """The HWS store, backed by a snapshot file so synchronize can write back."""
    path = tmp_path / "CMPP64_Model.json"
    write_snapshot(hws_store, path)
    return load_snapshot(path)


def test_organize_exports_package_and_writes_logs(saved_store, tmp_path, quiet_log):
    dest = tmp_path / "out"

    result = run_organize(saved_store, HWS_RULES, dest, RunConfig(), quiet_log)

    assert result.success
    assert result.last_error is None
    assert [r.status for r in result.exports] == [EXPORTED]
    assert (dest / "CMPP64_HWS_MO_Part_001_DX.json").exists()
    assert not (dest / "CMPP64_QC_MO_Part_001_DX.json").exists()
    assert (dest / ORGANIZE_LOG_NAME).exists()
    assert result.package_groups == {"HWS": [1]}

    rows = get_journal(dest).read_rows()
    assert [(r["Package"], r["Status"], r["Transferred"]) for r in rows] == [("HWS", "Exported", "1")]

    summary = json.loads((dest / "RunSummary.json").read_text(encoding="utf-8"))
    assert summary["partitions"] == {"DX_QC": 1, "HW_Supply_01": 1}

    # partition changes were synchronized back to the snapshot
    on_disk = load_snapshot(tmp_path / "CMPP64_Model.json")
    assert on_disk.get_item(1).partition == "HW_Supply_01"
    assert on_disk.get_item(2).partition == "DX_QC"


def test_run_log_lines_are_timestamped(saved_store, tmp_path, quiet_log):
    run_organize(saved_store, HWS_RULES, tmp_path / "out", RunConfig(), quiet_log)

    lines = (tmp_path / "out" / ORGANIZE_LOG_NAME).read_text(encoding="utf-8").splitlines()
    assert lines
    assert all(line[2] == ":" and line[5] == ":" and line[8:11] == " - " for line in lines)


def test_organize_exports_orphans_on_request(saved_store, tmp_path, quiet_log):
    dest = tmp_path / "out"

    result = run_organize(saved_store, HWS_RULES, dest, RunConfig(export_orphans=True), quiet_log)

    assert [r.package for r in result.exports] == ["HWS", "QC"]
    assert (dest / "CMPP64_QC_MO_Part_001_DX.json").exists()


def test_rerun_without_overwrite_skips_and_succeeds(saved_store, tmp_path, quiet_log):
    dest = tmp_path / "out"
    first = run_organize(saved_store, HWS_RULES, dest, RunConfig(), quiet_log)

    second = run_organize(saved_store, HWS_RULES, dest, RunConfig(), quiet_log)

    assert first.success
    assert second.success
    assert not second.completed_with_errors
    assert second.last_error is None
    assert [r.status for r in second.exports] == [SKIPPED]
    assert second.exported_count == 0


def test_every_group_failing_fails_the_run(hws_store, tmp_path, quiet_log):
    hws_store.transfer_failures[1] = "duct_curves"

    result = run_organize(hws_store, HWS_RULES, tmp_path / "out", RunConfig(), quiet_log)

    assert not result.success
    assert result.last_error.kind == "export"
    assert "HWS" in result.last_error.message


def test_no_exportable_group_fails_the_run(store_factory, tmp_path, quiet_log):
    store = store_factory(items=[duct(1, "CWS-014")])

    result = run_organize(store, HWS_RULES, tmp_path / "out", RunConfig(), quiet_log)

    assert not result.success
    assert result.last_error.kind == "export"
    assert store.get_item(1).partition == "DX_QC"
    assert quiet_log.lines


def test_sync_failure_is_only_a_warning(hws_store, tmp_path, quiet_log):
    # hws_store has no snapshot path, so synchronize raises
    result = run_organize(hws_store, HWS_RULES, tmp_path / "out", RunConfig(), quiet_log)

    assert result.success
    assert any("Warning: synchronize failed" in line for line in quiet_log.lines)


def test_organize_transaction_failure_rolls_back(store_factory, tmp_path, quiet_log):
    store = store_factory(items=[duct(1, "HWS-001"), duct(2, "HWS-002")])
    real_set = store.set_partition
    calls = []

    def flaky(item, partition):
        if calls:
            raise RuntimeError("store went away")
        calls.append(item.id)
        real_set(item, partition)

    store.set_partition = flaky
    result = run_organize(store, HWS_RULES, tmp_path / "out", RunConfig(), quiet_log)

    assert not result.success
    assert result.last_error.kind == "organize"
    assert store.get_item(1).partition == "Workset1"
    assert store.find_partition("HW_Supply_01") is None
    assert (tmp_path / "out" / ORGANIZE_LOG_NAME).exists()


def test_store_without_partitions_is_a_configuration_error(store_factory, tmp_path, quiet_log):
    store = store_factory(items=[duct(1, "HWS-001")], workshared=False)

    result = run_organize(store, HWS_RULES, tmp_path / "out", RunConfig(), quiet_log)

    assert not result.success
    assert result.last_error.kind == "configuration"
    assert store.get_item(1).partition == "Workset1"


def test_missing_rules_file_aborts_before_loading_model(tmp_path, quiet_log):
    result = organize_files(tmp_path / "model.json", tmp_path / "nope.csv", tmp_path / "out", log=quiet_log)

    assert not result.success
    assert result.last_error.kind == "configuration"
    assert "Rule file not found" in result.last_error.message
    assert (tmp_path / "out" / ORGANIZE_LOG_NAME).exists()


def test_organize_files_end_to_end(saved_store, rules_csv, tmp_path, quiet_log):
    result = organize_files(tmp_path / "CMPP64_Model.json", rules_csv, tmp_path / "out", log=quiet_log)

    assert result.success
    assert result.exported_count == 1
    assert result.partition_map[1] == "HW_Supply_01"


def test_existing_output_is_skipped_without_overwrite(big_job_store, tmp_path, log):
    job = ExportJob(package="HWS", export_code="HWS", part_number=1, file_name="out.json", item_ids=[1])
    (tmp_path / "out.json").write_text("{}", encoding="utf-8")
    journal = get_journal(tmp_path)

    results = execute_exports(big_job_store, [job], tmp_path, RunConfig(), journal, log)

    assert results[0].status == SKIPPED
    assert journal.read_rows()[0]["Status"] == "Skipped"
    assert (tmp_path / "out.json").read_text(encoding="utf-8") == "{}"

    results = execute_exports(big_job_store, [job], tmp_path, RunConfig(overwrite=True), journal, log)
    assert results[0].status == EXPORTED


@pytest.fixture()
def big_job_store(store_factory):
    return store_factory(items=[Item(id=1, category="pipe_curves", partition="DX_HWS")])


def test_extraction_numbers_shared_codes(store_factory, tmp_path, quiet_log):
    store = store_factory(
        items=[
            Item(id=1, category="pipe_curves", partition="B_PART"),
            Item(id=2, category="pipe_curves", partition="A_PART"),
            Item(id=3, category="conduit", partition="DX_ELT"),
            Item(id=4, category="rooms", partition="DX_ELT"),
        ],
        partitions=(),
    )
    config = RunConfig(partition_codes={"A_PART": "X", "B_PART": "X", "DX_ELT": "E-S"})

    result = run_extraction(store, tmp_path / "out", config, quiet_log)

    assert result.success
    names = sorted(r.file_name for r in result.exports)
    assert names == [
        "CMPP64_E-S_MO_Part_001_DX.json",
        "CMPP64_X_MO_Part_001_DX.json",
        "CMPP64_X_MO_Part_002_DX.json",
    ]
    a_part = load_snapshot(tmp_path / "out" / "CMPP64_X_MO_Part_001_DX.json")
    assert [i.partition for i in a_part.items] == ["A_PART"]
    assert result.package_groups["DX_ELT"] == [3]
    assert (tmp_path / "out" / EXTRACTION_LOG_NAME).exists()
