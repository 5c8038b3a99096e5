"""
Metadata store.

Reads and writes NodeMetadata in the ``meta`` namespace and last-run
progress in the ``progress`` namespace. On failure only the diagnostic
fields are replaced, so the last successful fingerprints stay
inspectable.
"""

from __future__ import annotations

import time

from pydantic import ValidationError

from ..core.exceptions import CorruptEntryError
from ..core.interfaces.cache import META, PROGRESS
from ..core.models.metadata import NodeMetadata
from ..core.models.node import Fingerprint, Node, Trigger
from ..core.models.run import Outcome
from .fingerprint import FingerprintStore, describe_command


class MetadataStore:
    """Persisted per-node records for one run."""

    def __init__(self, store: FingerprintStore):
        self._store = store

    def get(self, node_id: str) -> NodeMetadata | None:
        """
        Get the last recorded metadata of a node.

        Raises:
            CorruptEntryError: If the stored record cannot be decoded
        """
        data = self._store.get(node_id, META)
        if data is None:
            return None
        try:
            return NodeMetadata.from_json(data)
        except ValidationError as e:
            raise CorruptEntryError(
                "Malformed metadata record", namespace=META, key=node_id, cause=e
            ) from e

    def put(self, metadata: NodeMetadata) -> None:
        self._store.put(metadata.id, META, metadata.to_json().encode())

    def delete(self, node_id: str) -> bool:
        return self._store.delete(node_id, META)

    def ids(self) -> list[str]:
        return sorted(self._store.inventory.keys(META))

    def record_import(self, node: Node, fingerprint: Fingerprint) -> None:
        """Record an import's current fingerprint if it changed."""
        previous = self.get(node.id)
        if previous is not None and previous.fingerprint == fingerprint.long:
            return
        command = describe_command(node.func) if node.func is not None else None
        self.put(
            NodeMetadata(
                id=node.id,
                kind=node.kind.value,
                status="imported",
                fingerprint=fingerprint.long,
                command=command,
                built_at=time.time(),
            )
        )

    def record_success(
        self,
        node: Node,
        trigger: Trigger,
        fingerprint: Fingerprint,
        dependency_fingerprint: Fingerprint,
        outcome: Outcome,
    ) -> NodeMetadata:
        """Overwrite a target's metadata after a successful build."""
        metadata = NodeMetadata(
            id=node.id,
            kind=node.kind.value,
            status="built",
            trigger=trigger.value,
            fingerprint=fingerprint.long,
            dependency_fingerprint=dependency_fingerprint.long,
            file_fingerprint=outcome.file_fingerprint.long if outcome.file_fingerprint else None,
            command=describe_command(node.command),  # type: ignore[arg-type]
            built_at=time.time(),
            timings=outcome.timings,
            error=None,
            warnings=list(outcome.warnings),
            messages=list(outcome.messages),
        )
        self.put(metadata)
        return metadata

    def record_failure(self, node: Node, trigger: Trigger, outcome: Outcome) -> NodeMetadata:
        """Replace diagnostics of a failed build, keeping last-good fields."""
        previous = self.get(node.id)
        base = previous or NodeMetadata(id=node.id, kind=node.kind.value)
        metadata = base.model_copy(
            update={
                "status": "failed",
                "trigger": trigger.value,
                "timings": outcome.timings,
                "error": outcome.error,
                "warnings": list(outcome.warnings),
                "messages": list(outcome.messages),
            }
        )
        self.put(metadata)
        return metadata

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def set_progress(self, node_id: str, status: str) -> None:
        self._store.put(node_id, PROGRESS, status.encode())

    def get_progress(self, node_id: str) -> str | None:
        data = self._store.get(node_id, PROGRESS)
        return data.decode() if data is not None else None

    def progress(self) -> dict[str, str]:
        """Last recorded status of every node, by id."""
        result = {}
        for node_id in sorted(self._store.inventory.keys(PROGRESS)):
            status = self.get_progress(node_id)
            if status is not None:
                result[node_id] = status
        return result
