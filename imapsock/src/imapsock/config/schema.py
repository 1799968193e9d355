"""Pydantic models describing imapsock client settings."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClientSettings(BaseModel):
    """Tunables shared by the protocol engine, the connection and the decoder."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tag_prefix: str = "A"
    tag_width: int = Field(default=3, ge=1)
    strict_responses: bool = False
    strict_decoding: bool = False
    utf7_folder_names: bool = True
    unread_strategy: Literal["unseen-flag", "remove-seen"] = "unseen-flag"
    attachments_dir: Optional[Path] = None
    log_level: Literal["DEBUG", "INFO", "WARN", "ERROR"] = "INFO"

    @field_validator("tag_prefix")
    @classmethod
    def _validate_tag_prefix(cls, value: str) -> str:
        if len(value) != 1 or not ("A" <= value <= "Z"):
            raise ValueError("tag_prefix must be a single uppercase letter")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.upper()
            if value == "WARNING":
                return "WARN"
        return value

    @field_validator("attachments_dir")
    @classmethod
    def _validate_attachments_dir(cls, value: Optional[Path]) -> Optional[Path]:
        if value is None:
            return None
        value = value.expanduser()
        if not value.is_dir():
            raise ValueError(f"attachments_dir is not a directory: {value}")
        if not os.access(value, os.W_OK):
            raise ValueError(f"attachments_dir is not writable: {value}")
        return value
