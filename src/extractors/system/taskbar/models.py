"""
Taskbar usage data model.

An application seen in the FeatureUsage subtrees is keyed by one of four
identifier variants. Each variant is an immutable value type: equality and
hashing compare the variant and its payload, so ``AUMID("x")`` and
``Executable("x")`` are distinct keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Union

from core.enums import CounterField, IdentifierKind

U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True, slots=True)
class AUMID:
    """Application User Model ID (packaged or Store app), no path separators."""
    value: str

    kind = IdentifierKind.AUMID

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Executable:
    """Fully resolved, backslash-separated executable path."""
    path: str

    kind = IdentifierKind.EXECUTABLE

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True, slots=True)
class CsidlPath:
    """Original value name of a path whose folder tokens could not be resolved."""
    path: str

    kind = IdentifierKind.CSIDL_PATH

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True, slots=True)
class ProcessId:
    """Process that used the taskbar without an AUMID (``*PID`` value names)."""
    pid: int

    kind = IdentifierKind.PROCESS_ID

    def __post_init__(self) -> None:
        if not 0 <= self.pid <= U32_MAX:
            raise ValueError(f"Process id out of 32-bit range: {self.pid}")

    def __str__(self) -> str:
        return str(self.pid)


ApplicationIdentifier = Union[AUMID, Executable, CsidlPath, ProcessId]


@dataclass(slots=True)
class ApplicationUsageRecord:
    """Taskbar counters of one application, merged across the FeatureUsage subtrees."""
    identifier: ApplicationIdentifier
    # AppBadgeUpdated: badge icon refreshes (unread mail, notifications)
    badge_update_count: int = 0
    # AppLaunch: launches of an application pinned to the taskbar
    launch_count: int = 0
    # AppSwitched: left-clicks on the taskbar button to switch focus
    switch_count: int = 0
    # ShowJumpView: right-clicks opening the jump list
    jump_view_click_count: int = 0

    def set_counter(self, counter: CounterField, value: int) -> None:
        if not 0 <= value <= U32_MAX:
            raise ValueError(f"Counter {counter} out of 32-bit range: {value}")
        setattr(self, counter.value, value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier_type": str(self.identifier.kind),
            "identifier": str(self.identifier),
            "badge_update_count": self.badge_update_count,
            "launch_count": self.launch_count,
            "switch_count": self.switch_count,
            "jump_view_click_count": self.jump_view_click_count,
        }
