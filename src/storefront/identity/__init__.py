"""Customer directory factory.

Provides get_directory() / set_directory() to swap implementations.
"""

from storefront.identity.fake_adapter import InMemoryDirectory
from storefront.identity.port import CustomerDirectory

_current_directory: CustomerDirectory | None = None


def get_directory() -> CustomerDirectory:
    """Return the current customer directory. Defaults to InMemoryDirectory."""
    global _current_directory
    if _current_directory is None:
        _current_directory = InMemoryDirectory()
    return _current_directory


def set_directory(directory: CustomerDirectory) -> None:
    """Override the active directory (useful for tests)."""
    global _current_directory
    _current_directory = directory


def reset_directory() -> None:
    """Reset to default directory."""
    global _current_directory
    _current_directory = None
