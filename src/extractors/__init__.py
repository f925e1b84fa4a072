"""
Extractors for offline Windows registry artifacts.

Folder Structure:
- system/          Windows system artifacts (taskbar FeatureUsage)
- callbacks.py     Progress and soft-failure reporting interface
- exceptions.py    Extractor exception hierarchy
"""

from .callbacks import CollectionCallbacks, LoggingCallbacks
from .exceptions import (
    CollectionError,
    EnvironmentUnavailableError,
    ExtractorError,
    ProcessIdDecodeError,
    RegistryError,
    RegistryKeyNotFoundError,
    RegistryValueNotFoundError,
    ValueConversionError,
)

from . import system

__all__ = [
    'CollectionCallbacks',
    'LoggingCallbacks',
    'ExtractorError',
    'CollectionError',
    'EnvironmentUnavailableError',
    'ProcessIdDecodeError',
    'RegistryError',
    'RegistryKeyNotFoundError',
    'RegistryValueNotFoundError',
    'ValueConversionError',
    'system',
]
