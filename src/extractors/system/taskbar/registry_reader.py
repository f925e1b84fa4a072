"""
Registry access contract used by the taskbar collector.

Concrete readers:
- MemoryRegistryReader (memory_reader.py): nested dict tree, used for tests
  and replaying exported data
- RegipyRegistryReader (hive_reader.py): offline hive files via regipy
"""

from __future__ import annotations

import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, Protocol, Union

from core.enums import HiveRoot

from ...exceptions import ValueConversionError
from .models import U32_MAX

# regipy value type names
REG_DWORD = "REG_DWORD"
REG_DWORD_BIG_ENDIAN = "REG_DWORD_BIG_ENDIAN"
REG_QWORD = "REG_QWORD"
REG_BINARY = "REG_BINARY"
REG_SZ = "REG_SZ"
REG_EXPAND_SZ = "REG_EXPAND_SZ"


@dataclass(frozen=True, slots=True)
class RegistryValue:
    """Typed registry value data."""
    value_type: str
    data: Any

    def to_u32(self) -> int:
        """
        Interpret the value as an unsigned 32-bit counter.

        Raises:
            ValueConversionError: if the type or range does not fit
        """
        data = self.data
        if self.value_type in (REG_DWORD, REG_DWORD_BIG_ENDIAN, REG_QWORD):
            if isinstance(data, bool) or not isinstance(data, int):
                raise ValueConversionError(f"{self.value_type} payload is not an integer: {data!r}")
            if not 0 <= data <= U32_MAX:
                raise ValueConversionError(f"{self.value_type} value {data} is out of 32-bit range")
            return data
        if self.value_type == REG_BINARY and isinstance(data, str):
            # regipy may return bytes or hex-encoded string
            try:
                data = bytes.fromhex(data)
            except ValueError as e:
                raise ValueConversionError(f"REG_BINARY payload is not valid hex: {self.data!r}") from e
        if self.value_type == REG_BINARY and isinstance(data, (bytes, bytearray)):
            if len(data) == 4:
                return struct.unpack("<I", data)[0]
            if len(data) == 8:
                value = struct.unpack("<Q", data)[0]
                if value <= U32_MAX:
                    return value
                raise ValueConversionError(f"REG_BINARY value {value} is out of 32-bit range")
        raise ValueConversionError(f"Expected a DWORD, got {self.value_type}")

    def to_str(self) -> str:
        """Interpret the value as a string (REG_SZ / REG_EXPAND_SZ)."""
        if self.value_type in (REG_SZ, REG_EXPAND_SZ) and isinstance(self.data, str):
            return self.data.rstrip("\x00")
        raise ValueConversionError(f"Expected a string, got {self.value_type}")


KeyParent = Union[HiveRoot, Any]


class RegistryReader(Protocol):
    """
    Read-only registry access.

    Handles returned by ``open_key`` are opaque; callers release them with
    ``close_key`` (use ``open_key_scoped`` to guarantee it).
    """

    def open_key(self, parent: KeyParent, path: str) -> Any:
        """Open ``path`` under a hive root or an open handle; raises RegistryKeyNotFoundError."""
        ...

    def close_key(self, key: Any) -> None:
        ...

    def enumerate_keys(self, key: KeyParent) -> List[str]:
        """Names of the direct subkeys; raises RegistryError."""
        ...

    def enumerate_values(self, key: Any) -> List[str]:
        """Value names, the default value reported as ``""``; raises RegistryError."""
        ...

    def read_value(self, key: Any, name: str) -> RegistryValue:
        """Read one value; raises RegistryValueNotFoundError."""
        ...


@contextmanager
def open_key_scoped(registry: RegistryReader, parent: KeyParent, path: str) -> Iterator[Any]:
    """Open a key and close it on every exit path."""
    key = registry.open_key(parent, path)
    try:
        yield key
    finally:
        registry.close_key(key)


def join_path(*parts: str) -> str:
    """Join registry path components with backslashes, dropping empty parts."""
    return "\\".join(part.strip("\\") for part in parts if part and part.strip("\\"))
