"""
Core Enumerations

Centralized enum definitions for consistent typing across the codebase.
Using StrEnum (Python 3.11+) for string-based enums that serialize naturally.
"""

from enum import StrEnum


class HiveRoot(StrEnum):
    """Predefined registry roots a reader can open keys under."""

    HKLM = "HKEY_LOCAL_MACHINE"
    HKU = "HKEY_USERS"


class CounterField(StrEnum):
    """Counter attributes of an application usage record, one per FeatureUsage subtree."""

    BADGE_UPDATE_COUNT = "badge_update_count"
    LAUNCH_COUNT = "launch_count"
    SWITCH_COUNT = "switch_count"
    JUMP_VIEW_CLICK_COUNT = "jump_view_click_count"


class IdentifierKind(StrEnum):
    """Variant tags of an application identifier."""

    AUMID = "aumid"
    EXECUTABLE = "executable"
    CSIDL_PATH = "csidl_path"
    PROCESS_ID = "process_id"


class SoftFailureKind(StrEnum):
    """Conditions that skip part of a collection without aborting it."""

    MISSING_USER_HIVE = "missing_user_hive"
    MISSING_KEY = "missing_key"
    UNREADABLE_VALUE = "unreadable_value"
    INVALID_COUNTER = "invalid_counter"


class OutputFormat(StrEnum):
    """Export formats for collected records."""

    JSON = "json"
    CSV = "csv"
