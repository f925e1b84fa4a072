"""
Shell folder (KNOWNFOLDERID / CSIDL) interpolation for registry paths.

Explorer records executables as ``{GUID}\\relative\\path`` when the binary
lives under a well-known folder, and some paths keep ``%VAR%`` tokens. This
module turns such strings into concrete paths using one user's environment.

Interpolation is all-or-nothing: an unknown folder GUID or an environment
variable the user does not define yields ``None`` instead of a partially
substituted path.

Reference:
    https://learn.microsoft.com/en-us/windows/win32/shell/knownfolderid
"""

from __future__ import annotations

import re
from typing import Dict, Mapping, Optional

from core.logging import get_logger

LOGGER = get_logger("extractors.system.taskbar.csidl")

# Nested variables (LOCALAPPDATA -> %USERPROFILE%\AppData\Local) rarely go
# deeper than two levels; anything past this is treated as a cycle.
MAX_EXPANSION_DEPTH = 8

_GUID_PREFIX = re.compile(r"^(\{[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}\})")
_ENV_VAR = re.compile(r"%([^%\\]+)%")

# KNOWNFOLDERID -> path template (upper-case GUID keys)
KNOWN_FOLDERS: Dict[str, str] = {
    # System folders
    "{F38BF404-1D43-42F2-9305-67DE0B28FC23}": "%windir%",                           # Windows
    "{1AC14E77-02E7-4E5D-B744-2EB1AE5198B7}": "%windir%\\system32",                 # System
    "{D65231B0-B2F1-4857-A4CE-A8E7C6EA7D27}": "%windir%\\SysWOW64",                 # SystemX86
    "{905E63B6-C1BF-494E-B29C-65B732D3D21A}": "%ProgramFiles%",                     # ProgramFiles
    "{6D809377-6AF0-444B-8957-A3773F02200E}": "%ProgramFiles%",                     # ProgramFilesX64
    "{7C5A40EF-A0FB-4BFC-874A-C0F2E0B9FA8E}": "%ProgramFiles(x86)%",                # ProgramFilesX86
    "{F7F1ED05-9F6D-47A2-AAAE-29D317C6F066}": "%ProgramFiles%\\Common Files",       # ProgramFilesCommon
    "{6365D5A7-0F0D-45E5-87F6-0DA56B6A4F7D}": "%ProgramFiles%\\Common Files",       # ProgramFilesCommonX64
    "{DE974D24-D9C6-4D3E-BF91-F4455120B917}": "%ProgramFiles(x86)%\\Common Files",  # ProgramFilesCommonX86
    "{62AB5D82-FDC1-4DC3-A9DD-070D1D495D97}": "%ProgramData%",                      # ProgramData
    "{0762D272-C50A-4BB0-A382-697DCD729B80}": "%SystemDrive%\\Users",               # UserProfiles
    "{DFDF76A2-C82A-4D63-906A-5644AC457385}": "%PUBLIC%",                           # Public
    "{C4AA340D-F20F-4863-AFEF-F87EF2E6BA25}": "%PUBLIC%\\Desktop",                  # PublicDesktop
    "{0139D44E-6AFE-49F2-8690-3DAFCAE6FFB8}":
        "%ProgramData%\\Microsoft\\Windows\\Start Menu\\Programs",                  # CommonPrograms
    "{A4115719-D62E-491D-AA7C-E74B8BE3B067}":
        "%ProgramData%\\Microsoft\\Windows\\Start Menu",                            # CommonStartMenu
    # Per-user folders
    "{5E6C858F-0E22-4760-9AFE-EA3317B67173}": "%USERPROFILE%",                      # Profile
    "{3EB685DB-65F9-4CF6-A03A-E3EF65729F3D}": "%APPDATA%",                          # RoamingAppData
    "{F1B32785-6FBA-4FCF-9D55-7B8E7F157091}": "%LOCALAPPDATA%",                     # LocalAppData
    "{A520A1A4-1780-4FF6-BD18-167343C5AF16}": "%USERPROFILE%\\AppData\\LocalLow",   # LocalAppDataLow
    "{5CD7AEE2-2219-4A67-B85D-6C9CE15660CB}": "%LOCALAPPDATA%\\Programs",           # UserProgramFiles
    "{BCBD3057-CA5C-4622-B42D-BC56DB0AE516}": "%LOCALAPPDATA%\\Programs\\Common",   # UserProgramFilesCommon
    "{B4BFCC3A-DB2C-424C-B029-7FE99A87C641}": "%USERPROFILE%\\Desktop",             # Desktop
    "{FDD39AD0-238F-46AF-ADB4-6C85480369C7}": "%USERPROFILE%\\Documents",           # Documents
    "{374DE290-123F-4565-9164-39C4925E467B}": "%USERPROFILE%\\Downloads",           # Downloads
    "{4BD8D571-6D19-48D3-BE97-422220080E43}": "%USERPROFILE%\\Music",               # Music
    "{33E28130-4E1E-4676-835A-98395C3BC3BB}": "%USERPROFILE%\\Pictures",            # Pictures
    "{18989B1D-99B5-455B-841C-AB7C74E4DDFC}": "%USERPROFILE%\\Videos",              # Videos
    "{1777F761-68AD-4D8A-87BD-30B759FA33DD}": "%USERPROFILE%\\Favorites",           # Favorites
    "{A77F5D77-2E2B-44C3-A6A2-ABA601054A51}":
        "%APPDATA%\\Microsoft\\Windows\\Start Menu\\Programs",                      # Programs
    "{625B53C3-AB48-4EC1-BA1F-A1EF4146FC19}": "%APPDATA%\\Microsoft\\Windows\\Start Menu",  # StartMenu
    "{AE50C081-EBD2-438A-8655-8A092E34987A}": "%APPDATA%\\Microsoft\\Windows\\Recent",      # Recent
    "{9E3995AB-1F9C-4F13-B827-48B24B6C7174}":
        "%APPDATA%\\Microsoft\\Internet Explorer\\Quick Launch\\User Pinned",       # UserPinned
}


def normalize_separators(path: str) -> str:
    """Use backslash as the only path separator."""
    return path.replace("/", "\\")


def _lookup(env: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive environment lookup (Windows variable names ignore case)."""
    if name in env:
        return env[name]
    folded = name.casefold()
    for key, value in env.items():
        if key.casefold() == folded:
            return value
    return None


def expand_env_vars(path: str, env: Mapping[str, str]) -> Optional[str]:
    """
    Expand ``%VAR%`` tokens from ``env`` until none remain.

    Args:
        path: Path possibly holding ``%VAR%`` tokens
        env: One user's environment (variable name -> value)

    Returns:
        Expanded path, or None if a variable is undefined or expansion does
        not settle within MAX_EXPANSION_DEPTH passes
    """
    missing = []

    def replace_var(match: re.Match) -> str:
        value = _lookup(env, match.group(1))
        if value is None:
            missing.append(match.group(1))
            return match.group(0)
        return value

    for _ in range(MAX_EXPANSION_DEPTH):
        if not _ENV_VAR.search(path):
            return path
        path = _ENV_VAR.sub(replace_var, path)
        if missing:
            LOGGER.debug("Undefined environment variable(s) %s", ", ".join(missing))
            return None

    if _ENV_VAR.search(path):
        LOGGER.debug("Environment expansion did not settle: %s", path)
        return None
    return path


def interpolate_csidl_path(raw_path: str, env: Mapping[str, str]) -> Optional[str]:
    """
    Resolve known-folder GUIDs and environment variables in a registry path.

    Args:
        raw_path: Path as stored in the registry
        env: One user's environment (variable name -> value)

    Returns:
        The fully resolved, backslash-separated path, or None when any token
        cannot be resolved

    Example:
        ``{1AC14E77-02E7-4E5D-B744-2EB1AE5198B7}\\cmd.exe`` with
        ``windir=C:\\Windows`` resolves to ``C:\\Windows\\system32\\cmd.exe``.
    """
    path = normalize_separators(raw_path)

    match = _GUID_PREFIX.match(path)
    if match:
        template = KNOWN_FOLDERS.get(match.group(1).upper())
        if template is None:
            LOGGER.debug("Unknown known-folder GUID %s in %s", match.group(1), raw_path)
            return None
        path = template + path[match.end():]

    expanded = expand_env_vars(path, env)
    if expanded is None:
        return None
    # Environment values may carry forward slashes of their own
    return normalize_separators(expanded)
