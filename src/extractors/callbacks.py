"""
Callback interface for collection progress and soft-failure reporting.
"""

from __future__ import annotations

import logging
from typing import Protocol, Union

from core.enums import SoftFailureKind
from core.logging import get_logger, resolve_level

LOGGER = get_logger("extractors.callbacks")


class CollectionCallbacks(Protocol):
    """
    Callback interface used by collectors.

    Collectors call these methods whenever part of a collection is skipped or a
    new unit of work begins. Implementations must not raise: a callback is a
    one-way notification and never aborts the caller.
    """

    def on_soft_failure(self, kind: SoftFailureKind, message: str) -> None:
        """
        Report a skipped user, key or value.

        Args:
            kind: Category of the skipped item
            message: Human-readable description naming the registry path

        Example:
            callbacks.on_soft_failure(
                SoftFailureKind.MISSING_KEY,
                "Cannot open HKEY_USERS\\S-1-5-21-...\\...\\AppLaunch: not found",
            )
        """
        ...

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        """
        Report progress.

        Args:
            current: Current item/step (0-based)
            total: Total items/steps
            message: Optional status message
        """
        ...


class LoggingCallbacks:
    """Default callbacks: route soft failures and progress to the application logger."""

    def __init__(self, level: Union[int, str] = logging.INFO) -> None:
        self.level = resolve_level(level)
        self.soft_failures = 0

    def on_soft_failure(self, kind: SoftFailureKind, message: str) -> None:
        self.soft_failures += 1
        LOGGER.log(self.level, "[%s] %s", kind, message)

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        LOGGER.debug("Progress %d/%d %s", current, total, message)
