from __future__ import annotations

from typing import Mapping, Optional, Protocol


class ConfigRepository(Protocol):
    """Key/value store behind ``attendance_config``; values are raw strings."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def get_all(self) -> Mapping[str, str]:
        raise NotImplementedError

    def set(self, key: str, value: str, *, data_type: str, updated_by: int) -> None:
        raise NotImplementedError
