"""Location permission status as reported by the device."""

from __future__ import annotations

from pydantic import BaseModel

from shift_pilot.domain.enums import PermissionState


class PermissionStatus(BaseModel):
    """Foreground and background location permission answers."""

    foreground: PermissionState = PermissionState.UNDETERMINED
    background: PermissionState = PermissionState.UNDETERMINED

    model_config = {"frozen": True}

    @property
    def has_foreground_access(self) -> bool:
        return self.foreground == PermissionState.GRANTED

    @property
    def has_full_access(self) -> bool:
        """Background tracking needs both permissions granted."""
        return self.has_foreground_access and self.background == PermissionState.GRANTED
