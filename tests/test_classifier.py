from partwise.analyze.classifier import (
    build_classifier_table,
    classifier_for,
    is_cleanroom_partition,
    is_electrical,
    is_foundation,
    is_generic_structural,
    is_structural,
)
from partwise.schemas import RunConfig
from partwise.state.store import Item


def _typed(store_factory, category, item_workset=None, type_workset=None, family="", type_name=""):
    type_attrs = {"Workset": type_workset} if type_workset else {}
    item_attrs = {"Workset": item_workset} if item_workset else {}
    item_type = Item(id=900, category=category, attributes=type_attrs, name=type_name,
                     family_name=family, is_type=True)
    item = Item(id=1, category=category, attributes=item_attrs, type_id=900)
    store = store_factory(items=[item], types=[item_type])
    return item, store


def test_electrical_categories(store_factory):
    item, store = _typed(store_factory, "conduit")
    assert is_electrical(item, store)

    item, store = _typed(store_factory, "duct_curves")
    assert not is_electrical(item, store)


def test_cable_tray_without_workset_is_electrical(store_factory):
    item, store = _typed(store_factory, "cable_tray")
    assert is_electrical(item, store)


def test_cable_tray_with_exclusion_keyword(store_factory):
    item, store = _typed(store_factory, "cable_tray", type_workset="Fire Alarm Tray")
    assert not is_electrical(item, store)

    item, store = _typed(store_factory, "cable_tray_fitting", type_workset="Power Tray")
    assert is_electrical(item, store)


def test_pure_structural_defaults_to_true_without_workset(store_factory):
    item, store = _typed(store_factory, "structural_columns")
    assert is_structural(item, store)


def test_pure_structural_with_keyword_and_without(store_factory):
    item, store = _typed(store_factory, "structural_framing", type_workset="Steel Frame")
    assert is_structural(item, store)

    item, store = _typed(store_factory, "structural_framing", item_workset="HVAC Support")
    assert not is_structural(item, store)


def test_generic_model_structural_by_family_name(store_factory):
    item, store = _typed(store_factory, "generic_model", family="Steel Platform", type_name="Type A")
    assert is_generic_structural(item, store)
    assert is_structural(item, store)

    item, store = _typed(store_factory, "generic_model", family="Valve Tag")
    assert not is_structural(item, store)


def test_cleanroom_partition(store_factory):
    item, store = _typed(store_factory, "walls", item_workset="Clean Room Walls")
    assert is_cleanroom_partition(item, store)

    item, store = _typed(store_factory, "walls")
    assert not is_cleanroom_partition(item, store)

    item, store = _typed(store_factory, "pipe_curves", item_workset="Cleanroom")
    assert not is_cleanroom_partition(item, store)


def test_foundation(store_factory):
    item, store = _typed(store_factory, "mechanical_equipment", type_workset="Tool Pedestal")
    assert is_foundation(item, store)

    item, store = _typed(store_factory, "mechanical_equipment", type_workset="AHU")
    assert not is_foundation(item, store)


def test_attribute_errors_yield_false(store_factory, log):
    item, store = _typed(store_factory, "walls")

    def broken(*args):
        raise RuntimeError("attribute unavailable")

    store.read_attribute = broken
    assert not is_cleanroom_partition(item, store, log)
    assert log.contains("attribute unavailable")


def test_classifier_table_follows_configured_names():
    config = RunConfig(special_partitions={"electrical": "EL_Power", "structural": "DX_STB"})
    table = build_classifier_table(config)

    assert classifier_for("el_power", table) is is_electrical
    assert classifier_for("DX_STB", table) is is_structural
    assert classifier_for("DX_ELT", table) is None
