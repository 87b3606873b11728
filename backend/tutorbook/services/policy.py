"""Tunable booking policy constants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.config import Settings, settings


@dataclass(frozen=True)
class BookingPolicy:
    min_notice_hours: int
    slot_step_minutes: int
    trial_cap: int
    availability_horizon_days: int

    def __post_init__(self) -> None:
        if self.min_notice_hours < 0:
            raise ValueError("min_notice_hours must be >= 0")
        if self.slot_step_minutes <= 0:
            raise ValueError("slot_step_minutes must be > 0")
        if self.trial_cap < 0:
            raise ValueError("trial_cap must be >= 0")
        if self.availability_horizon_days <= 0:
            raise ValueError("availability_horizon_days must be > 0")

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "BookingPolicy":
        cfg = config or settings
        return cls(
            min_notice_hours=cfg.min_notice_hours,
            slot_step_minutes=cfg.slot_step_minutes,
            trial_cap=cfg.trial_cap,
            availability_horizon_days=cfg.availability_horizon_days,
        )
