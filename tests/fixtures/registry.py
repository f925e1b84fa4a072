"""Registry trees, environments and callbacks for taskbar tests."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import pytest

from core.enums import SoftFailureKind
from extractors.system.taskbar.memory_reader import MemoryRegistryReader

FEATURE_USAGE_PATH = "Software\\Microsoft\\Windows\\CurrentVersion\\Explorer\\FeatureUsage"
USER_SID = "S-1-5-21-1111111111-2222222222-3333333333-1001"
OTHER_SID = "S-1-5-21-1111111111-2222222222-3333333333-1002"
MISSING_SID = "S-1-5-21-1111111111-2222222222-3333333333-1003"

POWERSHELL_CSIDL = "{1AC14E77-02E7-4E5D-B744-2EB1AE5198B7}\\WindowsPowerShell\\v1.0\\powershell.exe"
POWERSHELL_PATH = "C:\\Windows\\system32\\WindowsPowerShell\\v1.0\\powershell.exe"
EXPLORER_CSIDL = "{F38BF404-1D43-42F2-9305-67DE0B28FC23}\\explorer.exe"
DISCORD_AUMID = "com.squirrel.Discord.Discord"


def nested_key(path: str, node: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap ``node`` in parent keys so it sits at ``path``."""
    for part in reversed([p for p in path.split("\\") if p]):
        node = {"keys": {part: node}}
    return node


def merge_nodes(*nodes: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge key trees built with nested_key."""
    merged: Dict[str, Any] = {"keys": {}, "values": {}}
    for node in nodes:
        merged["values"].update(node.get("values", {}))
        for name, child in node.get("keys", {}).items():
            if name in merged["keys"]:
                merged["keys"][name] = merge_nodes(merged["keys"][name], child)
            else:
                merged["keys"][name] = merge_nodes(child)
    return merged


def feature_usage_hive(**subtrees: Dict[str, Any]) -> Dict[str, Any]:
    """User hive with the given FeatureUsage subtrees (name -> values)."""
    return nested_key(
        FEATURE_USAGE_PATH,
        {"keys": {name: {"values": values} for name, values in subtrees.items()}},
    )


@dataclass
class RecordingCallbacks:
    """CollectionCallbacks that keep every notification for assertions."""
    soft_failures: List[Tuple[SoftFailureKind, str]] = field(default_factory=list)
    progress: List[Tuple[int, int, str]] = field(default_factory=list)

    def on_soft_failure(self, kind: SoftFailureKind, message: str) -> None:
        self.soft_failures.append((kind, message))

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        self.progress.append((current, total, message))

    def kinds(self) -> List[SoftFailureKind]:
        return [kind for kind, _ in self.soft_failures]

    def messages(self, kind: SoftFailureKind) -> List[str]:
        return [message for k, message in self.soft_failures if k == kind]


class StaticEnvironmentResolver:
    """EnvironmentResolver returning a fixed mapping."""

    def __init__(self, environments: Dict[str, Dict[str, str]]) -> None:
        self.environments = environments
        self.calls = 0

    def per_user_environment(self, registry) -> Dict[str, Dict[str, str]]:
        self.calls += 1
        return {sid: dict(env) for sid, env in self.environments.items()}


@pytest.fixture
def recording_callbacks() -> RecordingCallbacks:
    return RecordingCallbacks()


@pytest.fixture
def tester_env() -> Dict[str, str]:
    """Environment of a user whose profile lives in C:\\Users\\tester."""
    return {
        "APPDATA": "C:\\ProgramData",
        "LOCALAPPDATA": "%USERPROFILE%\\AppData\\Local",
        "ProgramFiles": "C:\\Program Files",
        "USERPROFILE": "C:\\Users\\tester",
        "windir": "C:\\Windows",
    }


@pytest.fixture
def two_user_tree() -> Dict[str, Any]:
    """HKEY_USERS with a fully populated user and a user with AppLaunch only."""
    return {
        "HKEY_USERS": {
            "keys": {
                USER_SID: feature_usage_hive(
                    AppBadgeUpdated={DISCORD_AUMID: 3, "": 9},
                    AppLaunch={
                        DISCORD_AUMID: 5,
                        POWERSHELL_CSIDL: 2,
                        POWERSHELL_PATH: 7,
                    },
                    AppSwitched={
                        "*PID00000f9c": 12,
                        "Microsoft.Windows.Explorer": "not a dword",
                    },
                    ShowJumpView={DISCORD_AUMID: 1},
                ),
                OTHER_SID: feature_usage_hive(
                    AppLaunch={DISCORD_AUMID: 8, EXPLORER_CSIDL: 4},
                ),
            },
        },
    }


@pytest.fixture
def two_user_registry(two_user_tree) -> MemoryRegistryReader:
    return MemoryRegistryReader(two_user_tree)


@pytest.fixture
def two_user_environments(tester_env) -> StaticEnvironmentResolver:
    """Environments for the two users, a user without a hive and the template."""
    return StaticEnvironmentResolver({
        "": {"windir": "C:\\Windows"},
        USER_SID: tester_env,
        OTHER_SID: {},
        MISSING_SID: tester_env,
    })
