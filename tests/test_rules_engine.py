from conftest import make_rule

from partwise.analyze.classifier import build_classifier_table
from partwise.schemas import RunConfig
from partwise.state.store import Item
from partwise.strategy.rules_engine import (
    candidate_values,
    description_words,
    find_matching_items,
    matches_rule,
    validate_rules,
    with_builtin_rules,
)


def _match(item, rule, store, config=None):
    config = config or RunConfig()
    return matches_rule(item, rule, store, build_classifier_table(config), config)


def test_pattern_rule_matches_classification(hws_store):
    rule = make_rule("HW_Supply_01", "HWS-xxx", code="HWS")
    items = hws_store.items

    matched = find_matching_items(items, rule, hws_store, build_classifier_table(RunConfig()), RunConfig())

    assert [i.id for i in matched] == [1]


def test_description_substring_match(store_factory):
    item = Item(id=5, category="pipe_curves", attributes={"system_abbreviation": "PCW Return Main"})
    store = store_factory(items=[item])

    assert _match(item, make_rule("DX_PCW", "ZZZ-xx", description="Return Main"), store)
    assert not _match(item, make_rule("DX_PCW", "ZZZ-xx", description="Supply"), store)


def test_system_name_only_read_for_duct_and_pipe_items(store_factory):
    pipe = Item(id=1, category="pipe_curves", attributes={"system_name": "UPW 3"})
    wall = Item(id=2, category="walls", attributes={"system_name": "UPW 3"})
    store = store_factory(items=[pipe, wall])

    assert "UPW 3" in candidate_values(pipe, store)
    assert candidate_values(wall, store) == []


def test_type_name_falls_back_to_type_item(store_factory):
    item_type = Item(id=90, category="pipe_curves", name="CDA Standard", is_type=True)
    item = Item(id=1, category="pipe_curves", type_id=90)
    store = store_factory(items=[item], types=[item_type])

    assert candidate_values(item, store) == ["CDA Standard"]
    assert _match(item, make_rule("DX_CDA", "CDA"), store)


def test_electrical_keyword_pattern_short_circuits(store_factory):
    conduit = Item(id=3, category="conduit")
    store = store_factory(items=[conduit])

    assert _match(conduit, make_rule("EL_Lighting", "LIGHTING-xx"), store)


def test_special_partition_uses_classifier(store_factory):
    column = Item(id=4, category="structural_columns", attributes={"system_classification": "HWS-001"})
    store = store_factory(items=[column])

    assert _match(column, make_rule("DX_STB", "anything"), store)
    assert not _match(column, make_rule("DX_ELT", "HWS-xxx"), store)


def test_blank_pattern_uses_partition_name(store_factory):
    item = Item(id=6, category="pipe_curves", attributes={"Workset": "Process Vacuum Lines"})
    store = store_factory(items=[item])

    assert _match(item, make_rule("DX_Process", "-"), store)
    assert _match(item, make_rule("DX_PV", "", description="Vacuum, exhaust"), store)
    assert not _match(item, make_rule("DX_PV", "", description="gas; air"), store)


def test_description_words_longer_than_three():
    assert description_words("Hot Water, Supply;Main") == ["Water", "Supply", "Main"]
    assert description_words(None) == []


def test_default_electrical_rule_added_once(log):
    config = RunConfig()
    rules = [make_rule("HW", "HWS-xxx", code="HWS")]

    extended = with_builtin_rules(rules, config, log)
    assert [r.target_partition for r in extended] == ["HW", "DX_ELT"]
    assert extended[-1].export_code == "ELT"

    again = with_builtin_rules(extended, config)
    assert len(again) == 2

    config.add_default_electrical_rule = False
    assert with_builtin_rules(rules, config) == rules


def test_validate_rules_reports_conflicts():
    rules = [
        make_rule("DX_QC", "QC-x", code="QC"),
        make_rule("DX_HWS", "HWS-xxx", code="HWS"),
        make_rule("dx_hws", "HWR-xxx", code="HWR"),
        make_rule("DX_X", "xxx", code="x1"),
    ]

    issues = validate_rules(rules, RunConfig())

    assert any("orphan partition" in i for i in issues)
    assert any("already exported as 'HWS'" in i for i in issues)
    assert any("no literal part" in i for i in issues)
    assert any("normalizes to nothing" in i for i in issues)
