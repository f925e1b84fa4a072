"""Tests for per-user taskbar FeatureUsage collection."""
import logging

import pytest

from core.config import TaskbarConfig
from core.enums import SoftFailureKind
from extractors.exceptions import (
    CollectionError,
    EnvironmentUnavailableError,
    RegistryError,
)
from extractors.system.taskbar.collector import FEATURE_USAGE_SUBTREES, collect
from extractors.system.taskbar.memory_reader import MemoryRegistryReader
from extractors.system.taskbar.models import AUMID, CsidlPath, Executable, ProcessId

from tests.fixtures.registry import (
    DISCORD_AUMID,
    EXPLORER_CSIDL,
    FEATURE_USAGE_PATH,
    MISSING_SID,
    OTHER_SID,
    POWERSHELL_PATH,
    USER_SID,
    StaticEnvironmentResolver,
    feature_usage_hive,
)


class TestCollect:
    """End-to-end collection over an in-memory registry."""

    @pytest.fixture
    def records(self, two_user_registry, two_user_environments, recording_callbacks):
        return collect(two_user_registry, two_user_environments, callbacks=recording_callbacks)

    def test_expected_identifiers(self, records):
        assert set(records) == {
            AUMID(DISCORD_AUMID),
            Executable(POWERSHELL_PATH),
            ProcessId(3996),
            CsidlPath(EXPLORER_CSIDL),
        }

    def test_record_key_matches_identifier(self, records):
        for identifier, record in records.items():
            assert record.identifier == identifier

    def test_fields_merged_across_subtrees_and_users(self, records):
        discord = records[AUMID(DISCORD_AUMID)]
        assert discord.badge_update_count == 3
        # Second user enumerated last: overwrites the first user's 5
        assert discord.launch_count == 8
        assert discord.switch_count == 0
        assert discord.jump_view_click_count == 1

    def test_two_spellings_collapse_last_wins(self, records):
        assert records[Executable(POWERSHELL_PATH)].launch_count == 7

    def test_process_id_counter(self, records):
        assert records[ProcessId(3996)].switch_count == 12

    def test_unresolved_path_kept_verbatim(self, records):
        assert records[CsidlPath(EXPLORER_CSIDL)].launch_count == 4

    def test_empty_value_name_never_a_record(self, records):
        assert AUMID("") not in records

    def test_invalid_counter_reported(self, records, recording_callbacks):
        messages = recording_callbacks.messages(SoftFailureKind.INVALID_COUNTER)
        assert len(messages) == 1
        assert f"HKEY_USERS\\{USER_SID}\\{FEATURE_USAGE_PATH}\\AppSwitched\\Microsoft.Windows.Explorer" in messages[0]
        assert AUMID("Microsoft.Windows.Explorer") not in records

    def test_missing_subtrees_reported_per_subtree(self, records, recording_callbacks):
        messages = recording_callbacks.messages(SoftFailureKind.MISSING_KEY)
        assert len(messages) == 3
        for subtree in ("AppBadgeUpdated", "AppSwitched", "ShowJumpView"):
            assert any(f"{OTHER_SID}\\{FEATURE_USAGE_PATH}\\{subtree}" in m for m in messages)

    def test_missing_user_hive_reported(self, records, recording_callbacks):
        messages = recording_callbacks.messages(SoftFailureKind.MISSING_USER_HIVE)
        assert len(messages) == 1
        assert MISSING_SID in messages[0]

    def test_template_sid_skipped(self, records, recording_callbacks):
        assert all("HKEY_USERS\\\\" not in message for _, message in recording_callbacks.soft_failures)
        assert len(recording_callbacks.progress) == 3

    def test_all_keys_released(self, records, two_user_registry):
        assert two_user_registry.open_handles == set()
        assert two_user_registry.opened_total > 0


class TestCollectErrorHandling:
    """Soft and hard failure handling."""

    def test_environment_failure_is_fatal(self, two_user_registry):
        class FailingResolver:
            def per_user_environment(self, registry):
                raise EnvironmentUnavailableError("no HKEY_USERS")

        with pytest.raises(CollectionError):
            collect(two_user_registry, FailingResolver())

    def test_registry_error_from_resolver_wrapped(self, two_user_registry):
        class FailingResolver:
            def per_user_environment(self, registry):
                raise RegistryError("hive unreadable")

        with pytest.raises(EnvironmentUnavailableError):
            collect(two_user_registry, FailingResolver())

    def test_missing_feature_usage_key(self, recording_callbacks):
        registry = MemoryRegistryReader({"HKEY_USERS": {"keys": {USER_SID: {"keys": {"Software": {}}}}}})
        records = collect(
            registry,
            StaticEnvironmentResolver({USER_SID: {}}),
            callbacks=recording_callbacks,
        )
        assert records == {}
        assert recording_callbacks.kinds() == [SoftFailureKind.MISSING_KEY]
        assert FEATURE_USAGE_PATH in recording_callbacks.soft_failures[0][1]
        assert registry.open_handles == set()

    def test_absent_subtree_does_not_block_others(self, recording_callbacks):
        registry = MemoryRegistryReader({"HKEY_USERS": {"keys": {
            USER_SID: feature_usage_hive(AppBadgeUpdated={"a": 1}, ShowJumpView={"a": 2}),
            OTHER_SID: feature_usage_hive(AppSwitched={"b": 3}),
        }}})
        records = collect(
            registry,
            StaticEnvironmentResolver({USER_SID: {}, OTHER_SID: {}}),
            callbacks=recording_callbacks,
        )
        assert records[AUMID("a")].badge_update_count == 1
        assert records[AUMID("a")].jump_view_click_count == 2
        assert records[AUMID("b")].switch_count == 3
        assert recording_callbacks.kinds().count(SoftFailureKind.MISSING_KEY) == 5

    def test_enumeration_failure_skips_one_subtree(self, recording_callbacks):
        class BrokenLaunchReader(MemoryRegistryReader):
            def enumerate_values(self, key):
                if key.path.endswith("AppLaunch"):
                    raise RegistryError("corrupt value list")
                return super().enumerate_values(key)

        registry = BrokenLaunchReader({"HKEY_USERS": {"keys": {
            USER_SID: feature_usage_hive(AppLaunch={"a": 1}, AppSwitched={"a": 2}),
        }}})
        records = collect(registry, StaticEnvironmentResolver({USER_SID: {}}), callbacks=recording_callbacks)

        assert records[AUMID("a")].launch_count == 0
        assert records[AUMID("a")].switch_count == 2
        assert any("AppLaunch" in m for m in recording_callbacks.messages(SoftFailureKind.MISSING_KEY))
        assert registry.open_handles == set()

    def test_custom_feature_usage_path(self, recording_callbacks):
        registry = MemoryRegistryReader({"HKEY_USERS": {"keys": {
            USER_SID: {"keys": {"Custom": {"keys": {"AppLaunch": {"values": {"a": 6}}}}}},
        }}})
        records = collect(
            registry,
            StaticEnvironmentResolver({USER_SID: {}}),
            callbacks=recording_callbacks,
            config=TaskbarConfig(feature_usage_path="Custom"),
        )
        assert records[AUMID("a")].launch_count == 6

    def test_default_callbacks_log(self, two_user_registry, two_user_environments, caplog):
        with caplog.at_level(logging.INFO, logger="taskbar_usage"):
            collect(two_user_registry, two_user_environments)
        assert "missing_user_hive" in caplog.text
        assert "invalid_counter" in caplog.text


def test_subtree_table():
    assert [name for name, _ in FEATURE_USAGE_SUBTREES] == [
        "AppBadgeUpdated", "AppLaunch", "AppSwitched", "ShowJumpView",
    ]
