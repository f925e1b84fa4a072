"""
Taskbar FeatureUsage collection across all users of a registry.

For each user SID:

    HKEY_USERS\\<sid>\\Software\\Microsoft\\Windows\\CurrentVersion\\Explorer\\FeatureUsage
        AppBadgeUpdated   -> badge_update_count
        AppLaunch         -> launch_count
        AppSwitched       -> switch_count
        ShowJumpView      -> jump_view_click_count

Records are keyed by identifier only, so the same application seen by two
users collapses into one record (last user enumerated wins per counter).
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from core.config import TaskbarConfig
from core.enums import CounterField, HiveRoot, SoftFailureKind
from core.logging import get_logger

from ...callbacks import CollectionCallbacks, LoggingCallbacks
from ...exceptions import EnvironmentUnavailableError, RegistryError
from .aggregator import ApplicationMap, process_subtree
from .environment import EnvironmentResolver, RegistryEnvironmentResolver, UserEnvVars
from .registry_reader import RegistryReader, join_path, open_key_scoped

LOGGER = get_logger("extractors.system.taskbar.collector")

FEATURE_USAGE_SUBTREES: Tuple[Tuple[str, CounterField], ...] = (
    ("AppBadgeUpdated", CounterField.BADGE_UPDATE_COUNT),
    ("AppLaunch", CounterField.LAUNCH_COUNT),
    ("AppSwitched", CounterField.SWITCH_COUNT),
    ("ShowJumpView", CounterField.JUMP_VIEW_CLICK_COUNT),
)


def _user_environments(registry: RegistryReader, env_resolver: EnvironmentResolver) -> Dict[str, UserEnvVars]:
    try:
        environments = dict(env_resolver.per_user_environment(registry))
    except RegistryError as e:
        raise EnvironmentUnavailableError(f"Cannot enumerate user environments: {e}") from e
    # The empty SID is the default-profile template, never a live user
    environments.pop("", None)
    return environments


def _collect_user(
    registry: RegistryReader,
    sid: str,
    env: UserEnvVars,
    applications: ApplicationMap,
    feature_usage_path: str,
    callbacks: CollectionCallbacks,
) -> None:
    user_path = join_path(str(HiveRoot.HKU), sid)
    feature_usage_full = join_path(user_path, feature_usage_path)

    try:
        with open_key_scoped(registry, HiveRoot.HKU, sid) as user_key:
            try:
                with open_key_scoped(registry, user_key, feature_usage_path) as feature_usage:
                    for subtree, field in FEATURE_USAGE_SUBTREES:
                        subtree_path = join_path(feature_usage_full, subtree)
                        try:
                            with open_key_scoped(registry, feature_usage, subtree) as subtree_key:
                                process_subtree(
                                    registry,
                                    subtree_key,
                                    env,
                                    applications,
                                    field,
                                    key_path=subtree_path,
                                    callbacks=callbacks,
                                )
                        except RegistryError as e:
                            callbacks.on_soft_failure(
                                SoftFailureKind.MISSING_KEY,
                                f"Cannot get {subtree_path} registry key: {e}",
                            )
            except RegistryError as e:
                callbacks.on_soft_failure(
                    SoftFailureKind.MISSING_KEY,
                    f"Cannot get {feature_usage_full} registry key: {e}",
                )
    except RegistryError as e:
        callbacks.on_soft_failure(
            SoftFailureKind.MISSING_USER_HIVE,
            f"Cannot access {user_path} registry key: {e}",
        )


def collect(
    registry: RegistryReader,
    env_resolver: Optional[EnvironmentResolver] = None,
    *,
    callbacks: Optional[CollectionCallbacks] = None,
    config: Optional[TaskbarConfig] = None,
) -> ApplicationMap:
    """
    Collect taskbar usage records for every user of ``registry``.

    Args:
        registry: Registry to read from
        env_resolver: Source of per-user environments (default: read from
            the registry itself)
        callbacks: Receives soft failures (default: log them)
        config: Collection settings (default: TaskbarConfig())

    Returns:
        Dict of ApplicationIdentifier -> ApplicationUsageRecord

    Raises:
        EnvironmentUnavailableError: if per-user environments cannot be
            enumerated; nothing is collected in that case
    """
    config = config or TaskbarConfig()
    env_resolver = env_resolver or RegistryEnvironmentResolver()
    callbacks = callbacks or LoggingCallbacks(config.soft_failure_level)

    environments = _user_environments(registry, env_resolver)
    applications: ApplicationMap = {}

    total = len(environments)
    for index, (sid, env) in enumerate(environments.items()):
        callbacks.on_progress(index, total, f"Collecting taskbar usage for {sid}")
        _collect_user(registry, sid, env, applications, config.feature_usage_path, callbacks)

    LOGGER.info("Collected %d taskbar application record(s) from %d user(s)", len(applications), total)
    return applications
