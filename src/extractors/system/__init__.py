"""
System extractors - Windows system artifact analysis.

This module provides extractors for Windows system artifacts:
- Taskbar: per-application FeatureUsage counters from user hives

Usage:
    from extractors.system.taskbar import RegipyRegistryReader, collect
"""

from __future__ import annotations

from .taskbar import collect

__all__ = [
    "collect",
]
