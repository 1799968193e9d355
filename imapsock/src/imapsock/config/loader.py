"""Strict loader for imapsock settings documents.

What:
  Locate, parse, validate and cache the optional ``imapsock.yaml`` settings
  file consumed by :class:`~imapsock.imap.connection.Connection`.

Why:
  Settings live outside the library and can be malformed. Centralising the
  parsing enforces consistent validation (including the attachments directory
  checks) so the connection can trust the resulting model.

How:
  Resolve candidate file locations based on an explicit argument, the
  ``IMAPSOCK_CONFIG_PATH`` environment variable, and defaults. Parse YAML with
  PyYAML's ``safe_load`` and validate with the pydantic
  :class:`~imapsock.config.schema.ClientSettings` model.

Interfaces:
  :func:`load_settings`, :func:`get_settings`, :func:`reset_settings`,
  :func:`parse_settings`.

Invariants:
  - Every payload passes strict pydantic validation before it is returned.
  - The cache respects explicit reload requests and the precedence order of
    candidate paths.
  - OS, YAML and validation errors are converted into :class:`SettingsError`
    carrying path context.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from ..errors import SettingsError
from .schema import ClientSettings


_CONFIG_ENV = "IMAPSOCK_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("imapsock.yaml"),
    Path("~/.config/imapsock/config.yaml"),
)
_SETTINGS_CACHE: Optional[Tuple[Optional[Path], ClientSettings]] = None


def _candidate_paths(path: Optional[Path]) -> Iterable[Path]:
    """Yield settings file locations in priority order.

    What:
      Produce the ordered, deduplicated list of paths that should be inspected.

    How:
      Check the explicit argument, then ``IMAPSOCK_CONFIG_PATH``, then the
      default locations. Paths are expanded to handle ``~``.
    """

    seen: set[Path] = set()
    if path is not None:
        candidate = path.expanduser()
        seen.add(candidate)
        yield candidate
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate
    for default in _DEFAULT_LOCATIONS:
        candidate = default.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def parse_settings(text: str, source: Optional[Path] = None) -> ClientSettings:
    """Parse and validate settings YAML text.

    Args:
      text: Raw YAML document.
      source: Path the text came from, used in error messages.

    Returns:
      The validated :class:`ClientSettings`.

    Raises:
      SettingsError: If the YAML is invalid, not a mapping, or fails
        validation.
    """

    origin = source if source is not None else "<string>"
    try:
        payload: Any = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"Invalid YAML in {origin}: {exc}") from exc
    if not isinstance(payload, dict):
        raise SettingsError(f"{origin} must contain a mapping at the top-level")
    try:
        return ClientSettings.model_validate(payload)
    except _PydanticValidationError as exc:
        raise SettingsError(f"Invalid settings in {origin}: {exc}") from exc


def _load_settings_from_path(path: Path) -> ClientSettings:
    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise SettingsError(f"Settings file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise SettingsError(f"Unable to read settings file {path}: {exc}") from exc
    return parse_settings(text, path)


def load_settings(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> ClientSettings:
    """Resolve, parse, and cache the client settings.

    What:
      Locate the settings file using the precedence chain, parse it, and
      return a validated :class:`ClientSettings`.

    Why:
      Connections are created often; caching avoids repeated disk IO while
      ``reload`` enables deterministic refreshes during tests.

    How:
      An explicitly requested path must exist. Otherwise the first existing
      candidate wins, and when none exists the model defaults are cached.

    Args:
      path: Optional explicit location of the settings file.
      reload: When ``True`` forces a fresh load bypassing the cache.

    Returns:
      The validated settings.

    Raises:
      SettingsError: If an explicit path is missing or any found file fails
        validation.
    """

    global _SETTINGS_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _SETTINGS_CACHE is not None:
        cached_path, cached_settings = _SETTINGS_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_settings

    if requested_path is not None and not requested_path.exists():
        raise SettingsError(f"Settings file missing: {requested_path}")

    for candidate in _candidate_paths(requested_path):
        if not candidate.exists():
            continue
        settings = _load_settings_from_path(candidate)
        _SETTINGS_CACHE = (candidate, settings)
        return settings

    settings = ClientSettings()
    _SETTINGS_CACHE = (None, settings)
    return settings


def get_settings() -> ClientSettings:
    """Return the cached settings, loading them on demand."""

    return load_settings()


def reset_settings() -> None:
    """Clear the cached settings so the next access reloads from disk."""

    global _SETTINGS_CACHE
    _SETTINGS_CACHE = None
