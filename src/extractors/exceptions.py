"""
Exceptions for extractor modules.
"""


class ExtractorError(Exception):
    """Base exception for extractor errors."""
    pass


class CollectionError(ExtractorError):
    """Raised when a collection pass cannot run at all."""
    pass


class EnvironmentUnavailableError(CollectionError):
    """Raised when per-user environments cannot be enumerated from the registry."""
    pass


class RegistryError(ExtractorError):
    """Base exception for registry access failures."""
    pass


class RegistryKeyNotFoundError(RegistryError):
    """Raised when a registry key cannot be opened."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Registry key not found: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class RegistryValueNotFoundError(RegistryError):
    """Raised when a value cannot be read from an open key."""

    def __init__(self, key_path: str, value_name: str):
        self.key_path = key_path
        self.value_name = value_name
        super().__init__(f"Registry value '{value_name}' not found under {key_path}")


class ValueConversionError(RegistryError, ValueError):
    """Raised when registry data cannot be interpreted as the requested type."""
    pass


class ProcessIdDecodeError(ExtractorError, ValueError):
    """Raised when a *PID value name does not carry a hexadecimal process id."""
    pass
