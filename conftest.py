import os
from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def ntuser_hive_path() -> Path:
    """Provide an NTUSER.DAT for tests that need a real hive."""
    env_path = os.environ.get("NTUSER_PATH")
    path = Path(env_path) if env_path else Path("hives/NTUSER.DAT")
    if not path.exists():
        pytest.skip(f"NTUSER.DAT not found at {path}")
    return path


@pytest.fixture(scope="session")
def ntuser_hive_sid() -> str:
    """SID to mount the real NTUSER.DAT under (HKEY_USERS\\<sid>)."""
    return os.environ.get("NTUSER_SID", "S-1-5-21-0-0-0-1001")
