from datetime import datetime

from partwise.execute.journaling import ExportJournal, RunLog
from partwise.schemas import EXPORTED, FAILED, TransferResult


def test_run_log_format_and_write(tmp_path, capsys):
    log = RunLog(clock=lambda: datetime(2024, 5, 1, 9, 3, 7))
    log("Starting")
    log.log("Done")

    assert log.lines == ["09:03:07 - Starting", "09:03:07 - Done"]
    assert "[partwise] Starting" in capsys.readouterr().out

    path = log.write(tmp_path / "logs" / "run.txt")
    assert path.read_text(encoding="utf-8") == "09:03:07 - Starting\n09:03:07 - Done\n"


def test_quiet_run_log_prints_nothing(capsys):
    log = RunLog(echo=False)
    log("hidden")

    assert capsys.readouterr().out == ""
    assert len(log.lines) == 1


def test_export_journal_rows(tmp_path):
    journal = ExportJournal(tmp_path / "ExportReport.csv")
    journal.record(TransferResult(package="HWS", export_code="HWS", requested=3, transferred=3,
                                  status=EXPORTED, file_name="P_HWS_MO_Part_001_DX"))
    journal.record(TransferResult(package="CHW", requested=2, skipped={"rooms": 1},
                                  failed={"Unknown": 1}, error="No items transferred", status=FAILED))

    # reopening keeps existing rows
    rows = ExportJournal(tmp_path / "ExportReport.csv").read_rows()

    assert [r["Status"] for r in rows] == ["Exported", "Failed"]
    assert rows[0]["Part"] == "001"
    assert rows[1]["Skipped"] == "1"
    assert rows[1]["Details"] == "No items transferred; failed by category: Unknown=1"
    assert rows[0]["Timestamp"]
