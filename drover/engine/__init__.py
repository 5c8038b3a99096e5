"""
Incremental build engine.

DependencyGraph validates a plan, FingerprintStore hashes its content,
StalenessEvaluator decides what is out of date, and Scheduler rebuilds
it through Executor. The functions in ``api`` tie them together.
"""

from .api import build_graph, cached, clean, diagnose, load, make, outdated, progress
from .executor import Executor, Limits
from .fingerprint import FingerprintStore, canonical_source, serialize_value
from .graph import DependencyGraph
from .inventory import Inventory
from .memory import RunMemory
from .metadata import MetadataStore
from .scheduler import Scheduler
from .staleness import StalenessEvaluator

__all__ = [
    "DependencyGraph",
    "Executor",
    "FingerprintStore",
    "Inventory",
    "Limits",
    "MetadataStore",
    "RunMemory",
    "Scheduler",
    "StalenessEvaluator",
    "build_graph",
    "cached",
    "canonical_source",
    "clean",
    "diagnose",
    "load",
    "make",
    "outdated",
    "progress",
    "serialize_value",
]
