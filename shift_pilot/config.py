"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from shift_pilot.core.detector import DetectionThresholds
from shift_pilot.core.validity import TripValidityGate


class Settings(BaseSettings):
    app_name: str = "shift-pilot"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    # Trip detection
    movement_speed_mps: float = 3.0
    stationary_speed_mps: float = 1.0
    movement_confirmation_ms: int = 60_000
    stationary_timeout_ms: int = 180_000

    # Validity gate
    min_trip_duration_ms: int = 60_000
    min_trip_distance_m: float = 160.0
    min_trip_samples: int = 2

    # Checkpoints (no path → in-memory only)
    checkpoint_path: str | None = None
    checkpoint_throttle_ms: int = 30_000

    # Deduction estimate for work trips, dollars per mile
    business_rate_per_mile: float = 0.67

    # Start with automatic detection on
    auto_detect: bool = True

    model_config = {"env_prefix": "SHIFT_PILOT_"}

    def detection_thresholds(self) -> DetectionThresholds:
        return DetectionThresholds(
            movement_speed_mps=self.movement_speed_mps,
            stationary_speed_mps=self.stationary_speed_mps,
            movement_confirmation_ms=self.movement_confirmation_ms,
            stationary_timeout_ms=self.stationary_timeout_ms,
        )

    def validity_gate(self) -> TripValidityGate:
        return TripValidityGate(
            min_duration_ms=self.min_trip_duration_ms,
            min_distance_m=self.min_trip_distance_m,
            min_samples=self.min_trip_samples,
        )


settings = Settings()
