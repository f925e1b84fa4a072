"""
Per-user environment variables reconstructed from registry hives.

Windows builds a logon environment from machine-wide and per-user keys; the
same sources are read here so folder tokens in FeatureUsage value names can be
resolved for each user:

1. HKLM\\SYSTEM\\CurrentControlSet\\Control\\Session Manager\\Environment
2. SystemRoot / program folders from HKLM\\SOFTWARE
3. ProfileList (USERPROFILE, ProgramData, PUBLIC)
4. HKU\\<sid>\\Environment
5. HKU\\<sid>\\Volatile Environment (APPDATA, LOCALAPPDATA, HOMEPATH...)

The machine-wide template is returned under the empty SID ``""``.
"""

from __future__ import annotations

from typing import Dict, List, Protocol, Tuple

from core.enums import HiveRoot
from core.logging import get_logger

from ...exceptions import EnvironmentUnavailableError, RegistryError
from .registry_reader import RegistryReader, open_key_scoped

LOGGER = get_logger("extractors.system.taskbar.environment")

UserEnvVars = Dict[str, str]

SESSION_MANAGER_ENV_PATH = "SYSTEM\\CurrentControlSet\\Control\\Session Manager\\Environment"
WINDOWS_NT_CURRENT_VERSION_PATH = "SOFTWARE\\Microsoft\\Windows NT\\CurrentVersion"
WINDOWS_CURRENT_VERSION_PATH = "SOFTWARE\\Microsoft\\Windows\\CurrentVersion"
PROFILE_LIST_PATH = "SOFTWARE\\Microsoft\\Windows NT\\CurrentVersion\\ProfileList"
USER_ENVIRONMENT_KEYS = ("Environment", "Volatile Environment")

# (registry key, value name, environment variable)
_MACHINE_VALUE_SOURCES: List[Tuple[str, str, str]] = [
    (WINDOWS_NT_CURRENT_VERSION_PATH, "SystemRoot", "SystemRoot"),
    (WINDOWS_NT_CURRENT_VERSION_PATH, "SystemRoot", "windir"),
    (WINDOWS_CURRENT_VERSION_PATH, "ProgramFilesDir", "ProgramFiles"),
    (WINDOWS_CURRENT_VERSION_PATH, "ProgramFilesDir (x86)", "ProgramFiles(x86)"),
    (WINDOWS_CURRENT_VERSION_PATH, "ProgramW6432Dir", "ProgramW6432"),
    (WINDOWS_CURRENT_VERSION_PATH, "CommonFilesDir", "CommonProgramFiles"),
    (WINDOWS_CURRENT_VERSION_PATH, "CommonFilesDir (x86)", "CommonProgramFiles(x86)"),
    (PROFILE_LIST_PATH, "ProgramData", "ProgramData"),
    (PROFILE_LIST_PATH, "ProgramData", "ALLUSERSPROFILE"),
    (PROFILE_LIST_PATH, "Public", "PUBLIC"),
]

# Variables Explorer derives from the profile directory when not set explicitly
_PROFILE_DEFAULTS = {
    "APPDATA": "%USERPROFILE%\\AppData\\Roaming",
    "LOCALAPPDATA": "%USERPROFILE%\\AppData\\Local",
}


class EnvironmentResolver(Protocol):
    """Source of per-user environments keyed by SID (``""`` = machine template)."""

    def per_user_environment(self, registry: RegistryReader) -> Dict[str, UserEnvVars]:
        ...


def _set_var(env: UserEnvVars, name: str, value: str) -> None:
    """Set a variable, replacing any existing spelling of the same name."""
    folded = name.casefold()
    for existing in [k for k in env if k.casefold() == folded]:
        del env[existing]
    env[name] = value


def _get_var(env: UserEnvVars, name: str) -> str | None:
    folded = name.casefold()
    for key, value in env.items():
        if key.casefold() == folded:
            return value
    return None


def _has_var(env: UserEnvVars, name: str) -> bool:
    return _get_var(env, name) is not None


def _read_key_strings(registry: RegistryReader, parent, path: str) -> UserEnvVars:
    """Read every string value of a key; missing keys give an empty mapping."""
    result: UserEnvVars = {}
    try:
        with open_key_scoped(registry, parent, path) as key:
            for name in registry.enumerate_values(key):
                if not name:
                    continue
                try:
                    result[name] = registry.read_value(key, name).to_str()
                except RegistryError as e:
                    LOGGER.debug("Skipping %s\\%s: %s", path, name, e)
    except RegistryError as e:
        LOGGER.debug("Environment key %s unavailable: %s", path, e)
    return result


def _read_string(registry: RegistryReader, parent, path: str, name: str) -> str | None:
    try:
        with open_key_scoped(registry, parent, path) as key:
            return registry.read_value(key, name).to_str()
    except RegistryError as e:
        LOGGER.debug("Cannot read %s\\%s: %s", path, name, e)
        return None


class RegistryEnvironmentResolver:
    """Build per-user environments from the machine and user hives."""

    def machine_environment(self, registry: RegistryReader) -> UserEnvVars:
        env: UserEnvVars = {}
        for name, value in _read_key_strings(registry, HiveRoot.HKLM, SESSION_MANAGER_ENV_PATH).items():
            _set_var(env, name, value)

        for key_path, value_name, var_name in _MACHINE_VALUE_SOURCES:
            if _has_var(env, var_name):
                continue
            value = _read_string(registry, HiveRoot.HKLM, key_path, value_name)
            if value is not None:
                _set_var(env, var_name, value)

        system_root = _get_var(env, "SystemRoot")
        if system_root and not _has_var(env, "SystemDrive") and len(system_root) >= 2 and system_root[1] == ":":
            _set_var(env, "SystemDrive", system_root[:2])
        return env

    def user_environment(self, registry: RegistryReader, sid: str, machine_env: UserEnvVars) -> UserEnvVars:
        env = dict(machine_env)

        profile_path = _read_string(registry, HiveRoot.HKLM, f"{PROFILE_LIST_PATH}\\{sid}", "ProfileImagePath")
        if profile_path:
            _set_var(env, "USERPROFILE", profile_path)

        for key_name in USER_ENVIRONMENT_KEYS:
            for name, value in _read_key_strings(registry, HiveRoot.HKU, f"{sid}\\{key_name}").items():
                _set_var(env, name, value)

        if _has_var(env, "USERPROFILE"):
            for name, value in _PROFILE_DEFAULTS.items():
                if not _has_var(env, name):
                    _set_var(env, name, value)
        return env

    def per_user_environment(self, registry: RegistryReader) -> Dict[str, UserEnvVars]:
        """
        Return ``{sid: {variable: value}}`` for every user hive plus ``""``.

        Raises:
            EnvironmentUnavailableError: if HKEY_USERS cannot be enumerated
        """
        try:
            sids = registry.enumerate_keys(HiveRoot.HKU)
        except RegistryError as e:
            raise EnvironmentUnavailableError(f"Cannot enumerate HKEY_USERS: {e}") from e

        machine_env = self.machine_environment(registry)
        environments: Dict[str, UserEnvVars] = {"": machine_env}
        for sid in sids:
            if not sid:
                continue
            environments[sid] = self.user_environment(registry, sid, machine_env)
            LOGGER.debug("Environment for %s: %d variables", sid, len(environments[sid]))
        return environments
