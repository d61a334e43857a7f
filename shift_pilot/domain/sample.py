"""LocationSample — one GPS/sensor reading delivered by the device.

Samples are validated at the boundary and are immutable afterwards.
Optional readings that the platform reports as unavailable (``None``,
negative speed, NaN) are kept as delivered; ``effective_speed`` is the one
place that turns them into the value used for thresholding.
"""

from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel, Field


class LocationSample(BaseModel):
    """A single timestamped position + speed reading."""

    latitude: float = Field(..., ge=-90.0, le=90.0, description="Degrees")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Degrees")
    altitude: Optional[float] = Field(default=None, description="Meters")
    horizontal_accuracy: Optional[float] = Field(default=None, description="Meters")
    speed: Optional[float] = Field(
        default=None,
        description="Meters/second; negative or missing means unknown",
    )
    heading: Optional[float] = Field(default=None, description="Degrees")
    timestamp: int = Field(..., ge=0, description="Epoch milliseconds")

    model_config = {"frozen": True}

    @property
    def speed_known(self) -> bool:
        return self.speed is not None and math.isfinite(self.speed) and self.speed >= 0.0

    @property
    def effective_speed(self) -> float:
        """Speed used for thresholding: unknown readings count as 0 m/s."""
        return self.speed if self.speed_known else 0.0

    def __str__(self) -> str:
        return f"({self.latitude:.5f}, {self.longitude:.5f})@{self.timestamp}"
