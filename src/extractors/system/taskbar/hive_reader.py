"""
Offline registry hive reader.

Maps the live-registry view the collector expects onto hive files exported
from an evidence image, using regipy:

- HKEY_LOCAL_MACHINE\\SYSTEM   -> SYSTEM hive
- HKEY_LOCAL_MACHINE\\SOFTWARE -> SOFTWARE hive
- HKEY_USERS\\<sid>            -> that user's NTUSER.DAT

Key lookups are case-insensitive and ``CurrentControlSet`` is resolved through
``SYSTEM\\Select\\Current`` since offline hives carry no such link.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set

from regipy.registry import RegistryHive

from core.enums import HiveRoot
from core.logging import get_logger

from ...exceptions import RegistryError, RegistryKeyNotFoundError, RegistryValueNotFoundError
from .registry_reader import KeyParent, RegistryValue, join_path, open_key_scoped

LOGGER = get_logger("extractors.system.taskbar.hive_reader")

PROFILE_LIST_PATH = "SOFTWARE\\Microsoft\\Windows NT\\CurrentVersion\\ProfileList"
DEFAULT_VALUE_NAME = "(default)"
CURRENT_CONTROL_SET = "currentcontrolset"


@dataclass(eq=False)
class HiveKey:
    """Handle onto a key of a loaded hive."""
    path: str
    hive_name: str
    nk: Any


class RegipyRegistryReader:
    """RegistryReader over offline hive files."""

    def __init__(
        self,
        system_hive: Optional[Path] = None,
        software_hive: Optional[Path] = None,
        user_hives: Optional[Mapping[str, Path]] = None,
    ) -> None:
        self._machine_paths: Dict[str, Path] = {}
        if system_hive is not None:
            self._machine_paths["SYSTEM"] = Path(system_hive)
        if software_hive is not None:
            self._machine_paths["SOFTWARE"] = Path(software_hive)
        self._user_paths: Dict[str, Path] = {
            sid: Path(path) for sid, path in (user_hives or {}).items()
        }
        self._hives: Dict[str, Any] = {}
        self.open_handles: Set[int] = set()

    # -- hive loading ----------------------------------------------------

    def _load_hive(self, hive_name: str, path: Path) -> Any:
        hive = self._hives.get(hive_name)
        if hive is not None:
            return hive

        try:
            hive = RegistryHive(str(path))
        except Exception as e:
            raise RegistryKeyNotFoundError(hive_name, f"cannot load hive {path}: {e}") from e
        LOGGER.debug("Loaded hive %s from %s", hive_name, path)
        self._hives[hive_name] = hive
        return hive

    def _hive_for(self, root: HiveRoot, name: str) -> tuple:
        """Return (hive_name, hive) for the first path component under a root."""
        if root == HiveRoot.HKU:
            for sid, path in self._user_paths.items():
                if sid.casefold() == name.casefold():
                    return f"HKU\\{sid}", self._load_hive(f"HKU\\{sid}", path)
        else:
            path = self._machine_paths.get(name.upper())
            if path is not None:
                return name.upper(), self._load_hive(name.upper(), path)
        raise RegistryKeyNotFoundError(join_path(str(root), name), "no hive mapped")

    # -- traversal -------------------------------------------------------

    def _current_control_set(self, hive: Any) -> Optional[str]:
        try:
            select = _find_subkey(hive.root, "Select")
            current = _find_value(select, "Current") if select is not None else None
        except Exception as e:
            LOGGER.debug("Cannot read SYSTEM\\Select\\Current: %s", e)
            return None
        if current is None or not isinstance(current.value, int):
            return None
        return f"ControlSet{current.value:03d}"

    def _descend(self, start: HiveKey, parts: List[str]) -> HiveKey:
        nk = start.nk
        path = start.path
        for part in parts:
            found = _find_subkey(nk, part)
            if found is None and part.casefold() == CURRENT_CONTROL_SET and start.hive_name == "SYSTEM":
                control_set = self._current_control_set(self._hives["SYSTEM"])
                if control_set:
                    found = _find_subkey(nk, control_set)
            if found is None:
                raise RegistryKeyNotFoundError(join_path(path, part), "subkey not found")
            nk = found
            path = join_path(path, found.name)
        return HiveKey(path, start.hive_name, nk)

    # -- RegistryReader --------------------------------------------------

    def open_key(self, parent: KeyParent, path: str) -> HiveKey:
        parts = [p for p in path.replace("/", "\\").split("\\") if p]
        if isinstance(parent, HiveKey):
            if id(parent) not in self.open_handles:
                raise RegistryError(f"Key handle is not open: {parent.path}")
            start = parent
        else:
            root = HiveRoot(parent)
            if not parts:
                raise RegistryKeyNotFoundError(str(root), "cannot open a hive root directly")
            hive_name, hive = self._hive_for(root, parts[0])
            start = HiveKey(join_path(str(root), parts[0]), hive_name, hive.root)
            parts = parts[1:]

        try:
            key = self._descend(start, parts)
        except RegistryKeyNotFoundError:
            raise
        except Exception as e:
            raise RegistryKeyNotFoundError(join_path(start.path, path), str(e)) from e
        self.open_handles.add(id(key))
        return key

    def close_key(self, key: HiveKey) -> None:
        self.open_handles.discard(id(key))

    def enumerate_keys(self, key: KeyParent) -> List[str]:
        if not isinstance(key, HiveKey):
            root = HiveRoot(key)
            if root == HiveRoot.HKU:
                return list(self._user_paths.keys())
            return list(self._machine_paths.keys())
        try:
            return [subkey.name for subkey in key.nk.iter_subkeys()]
        except Exception as e:
            raise RegistryError(f"Cannot enumerate subkeys of {key.path}: {e}") from e

    def enumerate_values(self, key: HiveKey) -> List[str]:
        try:
            return [
                "" if value.name == DEFAULT_VALUE_NAME else value.name
                for value in key.nk.iter_values()
            ]
        except Exception as e:
            raise RegistryError(f"Cannot enumerate values of {key.path}: {e}") from e

    def read_value(self, key: HiveKey, name: str) -> RegistryValue:
        lookup = name or DEFAULT_VALUE_NAME
        try:
            value = _find_value(key.nk, lookup)
        except Exception as e:
            raise RegistryValueNotFoundError(key.path, name) from e
        if value is None:
            raise RegistryValueNotFoundError(key.path, name)
        return RegistryValue(str(value.value_type), value.value)


def _find_subkey(nk: Any, name: str) -> Any:
    folded = name.casefold()
    for subkey in nk.iter_subkeys():
        if subkey.name.casefold() == folded:
            return subkey
    return None


def _find_value(nk: Any, name: str) -> Any:
    folded = name.casefold()
    for value in nk.iter_values():
        if value.name.casefold() == folded:
            return value
    return None


def _profile_relative_parts(profile_path: str) -> List[str]:
    """Split ``C:\\Users\\bob`` or ``%SystemDrive%\\Users\\bob`` into ``["Users", "bob"]``."""
    parts = [p for p in profile_path.replace("/", "\\").split("\\") if p]
    if parts and (parts[0].endswith(":") or parts[0].casefold() == "%systemdrive%"):
        parts = parts[1:]
    return parts


def _find_ntuser(profile_dir: Path) -> Optional[Path]:
    if not profile_dir.is_dir():
        return None
    for entry in profile_dir.iterdir():
        if entry.name.casefold() == "ntuser.dat" and entry.is_file():
            return entry
    return None


def discover_user_hives(software_hive: Path, mount_root: Path) -> Dict[str, Path]:
    """
    Map user SIDs to NTUSER.DAT files of a mounted image.

    Reads ``ProfileList\\<sid>\\ProfileImagePath`` from the SOFTWARE hive and
    looks for the profile's NTUSER.DAT below ``mount_root``.

    Args:
        software_hive: Path to the SOFTWARE hive
        mount_root: Directory where the system volume is mounted

    Returns:
        Dict of SID -> NTUSER.DAT path, only for profiles found on disk
    """
    reader = RegipyRegistryReader(software_hive=software_hive)
    hives: Dict[str, Path] = {}

    with open_key_scoped(reader, HiveRoot.HKLM, PROFILE_LIST_PATH) as profile_list:
        for sid in reader.enumerate_keys(profile_list):
            try:
                with open_key_scoped(reader, profile_list, sid) as profile_key:
                    profile_path = reader.read_value(profile_key, "ProfileImagePath").to_str()
            except RegistryError as e:
                LOGGER.debug("Skipping profile %s: %s", sid, e)
                continue

            ntuser = _find_ntuser(mount_root.joinpath(*_profile_relative_parts(profile_path)))
            if ntuser is None:
                LOGGER.info("No NTUSER.DAT for %s (%s) under %s", sid, profile_path, mount_root)
                continue
            hives[sid] = ntuser

    return hives
