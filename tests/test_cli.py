import json

import pytest

from partwise.commands.cli import build_parser, main
from partwise.state.io import load_snapshot, write_snapshot


@pytest.fixture()
def model_path(tmp_path, hws_store):
    return write_snapshot(hws_store, tmp_path / "CMPP64_Model.json")


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_organize_command(model_path, rules_csv, tmp_path, capsys):
    code = main([
        "organize",
        "--model", str(model_path),
        "--rules", str(rules_csv),
        "--dest", str(tmp_path / "out"),
        "--export-orphans",
        "--prefix", "PRJ",
        "--quiet",
    ])

    assert code == 0
    assert (tmp_path / "out" / "PRJ_HWS_MO_Part_001_DX.json").exists()
    assert (tmp_path / "out" / "PRJ_QC_MO_Part_001_DX.json").exists()
    assert "2 of 2 groups exported" in capsys.readouterr().out


def test_organize_command_fails_on_bad_rules(model_path, tmp_path):
    bad = tmp_path / "bad.csv"
    bad.write_text("Target Partition\nDX_A\n", encoding="utf-8")

    code = main(["organize", "--model", str(model_path), "--rules", str(bad),
                 "--dest", str(tmp_path / "out"), "--quiet"])

    assert code == 1
    assert load_snapshot(model_path).get_item(1).partition == "Workset1"


def test_preview_does_not_write_model(model_path, rules_csv, tmp_path, capsys):
    code = main(["preview", "--model", str(model_path), "--rules", str(rules_csv), "--out", str(tmp_path / "p")])

    assert code == 0
    counts = json.loads((tmp_path / "p" / "PreviewCounts.json").read_text(encoding="utf-8"))
    assert counts["partitions"] == {"DX_QC": 1, "HW_Supply_01": 1}
    assert counts["assigned"] == 1
    assert load_snapshot(model_path).get_item(1).partition == "Workset1"
    assert "HW_Supply_01" in capsys.readouterr().out


def test_extract_command(model_path, tmp_path):
    code = main(["extract", "--model", str(model_path), "--dest", str(tmp_path / "out"), "--quiet"])

    assert code == 0
    assert (tmp_path / "out" / "CMPP64_Wor_MO_Part_001_DX.json").exists()
