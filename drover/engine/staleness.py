"""
Staleness evaluation.

Decides whether a target must rebuild by comparing its recorded
metadata with fresh fingerprints under its trigger. Components are
checked in a fixed priority order (always, missing, command, depends,
file) and the first one that fires becomes the reason.

Evaluation reads the cache but never writes it, so dry runs can call it
freely.
"""

from __future__ import annotations

from ..core.models.config import DroverConfig
from ..core.models.metadata import NodeMetadata
from ..core.models.node import Fingerprint, Node, Trigger
from ..core.models.run import StalenessDecision
from .fingerprint import FingerprintStore

FORCED = "forced"


def effective_trigger(node: Node, config: DroverConfig) -> Trigger:
    """Node's own trigger, or the configured default."""
    if node.trigger is not None:
        return node.trigger
    return Trigger.parse(config.execution.trigger)


class StalenessEvaluator:
    """
    Trigger-based rebuild decisions.

    A target without a successful build on record, or whose cached value
    is gone, is stale under every trigger: there is nothing to serve
    downstream. The ``missing`` component also fires when a
    file-producing target's output file is absent.
    """

    def __init__(self, store: FingerprintStore, config: DroverConfig):
        self._store = store
        self._config = config

    def decide(
        self,
        node: Node,
        metadata: NodeMetadata | None,
        fresh_fingerprint: Fingerprint,
        fresh_dependency_fingerprint: Fingerprint,
        *,
        forced: bool = False,
    ) -> StalenessDecision:
        """
        Decide whether a target is stale.

        Args:
            node: Target to evaluate
            metadata: Last recorded metadata (None if never processed)
            fresh_fingerprint: Current command fingerprint
            fresh_dependency_fingerprint: Current combined predecessor fingerprint
            forced: Treat the node as stale regardless of trigger

        Raises:
            FileFingerprintError: If the output file exists but is unreadable
        """
        trigger = effective_trigger(node, self._config)

        def decision(reason: str | None) -> StalenessDecision:
            return StalenessDecision(
                node_id=node.id, stale=reason is not None, reason=reason, trigger=trigger.value
            )

        if forced:
            return decision(FORCED)

        for component in trigger.components():
            if component not in ("always", "missing") and self._never_built(node, metadata):
                return decision("missing")
            if self._fires(component, node, metadata, fresh_fingerprint, fresh_dependency_fingerprint):
                return decision(component)
        return decision(None)

    def _never_built(self, node: Node, metadata: NodeMetadata | None) -> bool:
        if metadata is None or metadata.fingerprint is None:
            return True
        return not self._store.has_value(node.id)

    def _fires(
        self,
        component: str,
        node: Node,
        metadata: NodeMetadata | None,
        fresh_fingerprint: Fingerprint,
        fresh_dependency_fingerprint: Fingerprint,
    ) -> bool:
        if component == "always":
            return True
        if component == "missing":
            if self._never_built(node, metadata):
                return True
            if node.produces_file:
                return self._store.file_fingerprint(node.output_file).is_absent
            return False

        if metadata is None:
            return True
        if component == "command":
            return fresh_fingerprint.long != metadata.fingerprint
        if component == "depends":
            return fresh_dependency_fingerprint.long != metadata.dependency_fingerprint
        if component == "file":
            if not node.produces_file:
                return False
            live = self._store.file_fingerprint(node.output_file)
            return live.is_absent or live.long != metadata.file_fingerprint
        return False
