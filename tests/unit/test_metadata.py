"""
Unit tests for MetadataStore.
"""

import pytest

from drover.core.exceptions import CorruptEntryError
from drover.core.models.metadata import ErrorInfo, NodeMetadata
from drover.core.models.node import Node, Trigger
from drover.core.models.run import Outcome
from drover.engine.metadata import MetadataStore


@pytest.fixture
def metadata(store):
    return MetadataStore(store)


def test_round_trip(metadata):
    metadata.put(NodeMetadata(id="t", kind="target", fingerprint="abc", warnings=["w"]))
    loaded = metadata.get("t")
    assert loaded.fingerprint == "abc"
    assert loaded.warnings == ["w"]
    assert metadata.ids() == ["t"]


def test_missing_flag_is_not_persisted(metadata):
    meta = NodeMetadata(id="t", kind="target", missing=True)
    assert "missing" not in meta.to_json()


def test_corrupt_entry(metadata, store):
    store.put("t", "meta", b"{not json")
    with pytest.raises(CorruptEntryError) as exc_info:
        metadata.get("t")
    assert exc_info.value.context["namespace"] == "meta"


def test_record_import_only_on_change(metadata, store):
    node = Node.import_object("a", 1)
    fingerprint = store.value_fingerprint(1)
    metadata.record_import(node, fingerprint)
    first = metadata.get("a").built_at

    metadata.record_import(node, fingerprint)
    assert metadata.get("a").built_at == first

    metadata.record_import(node, store.value_fingerprint(2))
    assert metadata.get("a").fingerprint == store.value_fingerprint(2).long


def test_record_failure_without_history(metadata):
    node = Node.target("t", lambda: 1)
    outcome = Outcome(
        node_id="t", success=False, error=ErrorInfo(type="RuntimeError", message="x")
    )
    meta = metadata.record_failure(node, Trigger.ANY, outcome)
    assert meta.status == "failed"
    assert meta.fingerprint is None
    assert metadata.get("t").error.type == "RuntimeError"


def test_progress(metadata):
    metadata.set_progress("b", "running")
    metadata.set_progress("a", "done")
    metadata.set_progress("b", "failed")
    assert metadata.progress() == {"a": "done", "b": "failed"}
    assert metadata.get_progress("c") is None
