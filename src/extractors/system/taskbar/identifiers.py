"""
Resolution of FeatureUsage value names into application identifiers.

Value names under ``Explorer\\FeatureUsage\\<subtree>`` come in four shapes:

- ``Microsoft.WindowsTerminal_8wekyb3d8bbwe!App``: an AUMID
- ``{1AC14E77-...}\\cmd.exe`` or ``%windir%\\explorer.exe``: a folder token path
- ``C:\\Tools\\app.exe``: an already qualified path
- ``*PID00000f9c``: a process that used the taskbar without an AUMID
"""

from __future__ import annotations

import string
from typing import Mapping

from core.logging import get_logger

from ...exceptions import ProcessIdDecodeError
from .csidl import interpolate_csidl_path
from .models import AUMID, ApplicationIdentifier, CsidlPath, Executable, ProcessId, U32_MAX

LOGGER = get_logger("extractors.system.taskbar.identifiers")

PID_SENTINEL = "*PID"
PATH_SEPARATORS = ("\\", "/")


def decode_pid(hex_tail: str) -> int:
    """
    Decode the hexadecimal process id that follows the ``*PID`` sentinel.

    Digits are weighted from the end of the string: the digit at reverse
    position ``i`` contributes ``digit * 16**i``.

    Raises:
        ProcessIdDecodeError: empty tail, non-hex character, or a value that
            does not fit in 32 bits
    """
    if not hex_tail:
        raise ProcessIdDecodeError("Empty process id")

    result = 0
    for position, char in enumerate(reversed(hex_tail)):
        if char not in string.hexdigits:
            raise ProcessIdDecodeError(f"Invalid hex digit {char!r} in process id {hex_tail!r}")
        digit = int(char, 16)
        if digit == 0:
            continue
        result += digit << (4 * position)

    if result > U32_MAX:
        raise ProcessIdDecodeError(f"Process id {hex_tail!r} does not fit in 32 bits")
    return result


def resolve_identifier(raw: str, env: Mapping[str, str]) -> ApplicationIdentifier:
    """
    Map a raw FeatureUsage value name to its application identifier.

    Never raises: a malformed ``*PID`` name is kept as an AUMID and a path
    whose tokens cannot all be resolved is kept verbatim as a CsidlPath.

    Args:
        raw: Registry value name
        env: Environment of the user owning the value

    Returns:
        One of AUMID, Executable, CsidlPath or ProcessId
    """
    if raw.startswith(PID_SENTINEL):
        try:
            return ProcessId(decode_pid(raw[len(PID_SENTINEL):]))
        except ProcessIdDecodeError as e:
            LOGGER.debug("Value name %r is not a process id: %s", raw, e)
            return AUMID(raw)

    if not any(sep in raw for sep in PATH_SEPARATORS):
        return AUMID(raw)

    resolved = interpolate_csidl_path(raw, env)
    if resolved is None:
        return CsidlPath(raw)
    return Executable(resolved)
