"""
Taskbar FeatureUsage extractor.

Reads per-application taskbar counters (badge updates, launches, focus
switches, jump list clicks) from each user's
``Explorer\\FeatureUsage`` key and merges them by normalized application
identifier.
"""

from .aggregator import merge_subtree, process_subtree, update_record
from .collector import FEATURE_USAGE_SUBTREES, collect
from .csidl import interpolate_csidl_path
from .environment import EnvironmentResolver, RegistryEnvironmentResolver
from .hive_reader import RegipyRegistryReader, discover_user_hives
from .identifiers import decode_pid, resolve_identifier
from .memory_reader import MemoryRegistryReader
from .models import (
    AUMID,
    ApplicationIdentifier,
    ApplicationUsageRecord,
    CsidlPath,
    Executable,
    ProcessId,
)
from .registry_reader import RegistryReader, RegistryValue, open_key_scoped

__all__ = [
    "AUMID",
    "ApplicationIdentifier",
    "ApplicationUsageRecord",
    "CsidlPath",
    "EnvironmentResolver",
    "Executable",
    "FEATURE_USAGE_SUBTREES",
    "MemoryRegistryReader",
    "ProcessId",
    "RegipyRegistryReader",
    "RegistryEnvironmentResolver",
    "RegistryReader",
    "RegistryValue",
    "collect",
    "decode_pid",
    "discover_user_hives",
    "interpolate_csidl_path",
    "merge_subtree",
    "open_key_scoped",
    "process_subtree",
    "resolve_identifier",
    "update_record",
]
