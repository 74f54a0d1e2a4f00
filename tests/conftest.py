from pathlib import Path

import pytest

from partwise.schemas import ConfigRule, RunConfig
from partwise.state.store import InMemoryModelStore, Item


class LogCollector:
    """Stands in for RunLog: callable, keeps every message."""

    def __init__(self):
        self.messages = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)

    def contains(self, text: str) -> bool:
        return any(text in m for m in self.messages)


@pytest.fixture()
def log():
    return LogCollector()


@pytest.fixture()
def config():
    return RunConfig()


def make_rule(partition, pattern="", description="", code=""):
    return ConfigRule(
        target_partition=partition,
        source_pattern=pattern,
        description=description,
        export_code=code,
    )


@pytest.fixture()
def rule():
    return make_rule


def duct(item_id, classification, partition="Workset1", **kwargs):
    attributes = {"system_classification": classification}
    attributes.update(kwargs.pop("attributes", {}))
    return Item(id=item_id, category="duct_curves", attributes=attributes, partition=partition, **kwargs)


@pytest.fixture()
def store_factory():
    def build(items=(), types=(), partitions=("Workset1",), title="CMPP64_Model", path=None, workshared=True):
        store = InMemoryModelStore(title=title, path=path, workshared=workshared, partitions=partitions)
        for t in types:
            store.add_item(t)
        for i in items:
            store.add_item(i)
        return store
    return build


@pytest.fixture()
def hws_store(store_factory):
    """Two duct curves: HWS-014 should be claimed, CWS-014 should end up orphaned."""
    return store_factory(items=[duct(1, "HWS-014"), duct(2, "CWS-014")])


@pytest.fixture()
def rules_csv(tmp_path) -> Path:
    path = tmp_path / "rules.csv"
    path.write_text(
        "Target Partition,Source Pattern,Description,Export Code\n"
        "HW_Supply_01,HWS-xxx,Hot Water Supply,HWS\n"
        "DX_CHW,CHW-xx,Chilled Water,CHW 4xx\n"
        "DX_Notes,,Notes only,NO EXPORT\n"
        ",PAW-x,Missing partition,PAW\n",
        encoding="utf-8",
    )
    return path
