"""imapsock configuration package.

What:
  Provide a cohesive import surface for settings loading and the pydantic
  schema used by the connection.

Interfaces:
  - load_settings / get_settings / reset_settings / parse_settings: Resolve
    ``imapsock.yaml`` and expose a cached settings object.
  - ClientSettings: pydantic model validated before any setting is used.
"""

from .loader import get_settings, load_settings, parse_settings, reset_settings
from .schema import ClientSettings

__all__ = [
    "ClientSettings",
    "get_settings",
    "load_settings",
    "parse_settings",
    "reset_settings",
]
