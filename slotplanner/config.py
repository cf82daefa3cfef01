"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import TimeRange, parse_local_time
from .domain.schedule_codec import BLOCK_MINUTES, ScheduleCodec
from .domain.slot_planner import DEFAULT_SLOT_MINUTES, DEFAULT_TIMEZONE, SlotPlanner


class ShiftConfig(BaseModel):
    """One daily operating window."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Validate the value is an "HH:MM" time."""
        parse_local_time(value)
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "ShiftConfig":
        """Ensure the shift opens before it closes."""
        if parse_local_time(self.start) >= parse_local_time(self.end):
            raise ValueError(f"Shift start {self.start} must be before end {self.end}")
        return self

    def to_range(self) -> TimeRange:
        return TimeRange.from_strings(self.start, self.end)


def _default_shifts() -> List[ShiftConfig]:
    return [ShiftConfig(start="09:00", end="13:00"), ShiftConfig(start="14:00", end="18:00")]


class BookingConfig(BaseModel):
    """Booking rules applied around the planner."""
    min_lead_days: int = 1
    horizon_days: int = 30
    weekly_limit: int = 1

    @field_validator("min_lead_days", "horizon_days")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"Booking window offsets must not be negative, got {value}")
        return value

    @field_validator("weekly_limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("weekly_limit must be greater than zero")
        return value


class PlannerConfig(BaseModel):
    """Application configuration."""
    timezone: str = DEFAULT_TIMEZONE
    slot_minutes: int = DEFAULT_SLOT_MINUTES
    block_minutes: int = BLOCK_MINUTES
    shifts: List[ShiftConfig] = Field(default_factory=_default_shifts)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    data_file: Path = Path("data.json")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("slot_minutes", "block_minutes")
    @classmethod
    def validate_granularity(cls, value: int) -> int:
        """Ensure slot and block lengths are positive."""
        if value <= 0:
            raise ValueError("slot_minutes and block_minutes must be greater than zero")
        return value

    @field_validator("shifts")
    @classmethod
    def validate_shifts(cls, value: List[ShiftConfig]) -> List[ShiftConfig]:
        if not value:
            raise ValueError("At least one shift must be configured")
        return value

    @model_validator(mode="after")
    def validate_block_grid(self) -> "PlannerConfig":
        """Ensure the block length divides every shift."""
        self.build_codec()
        return self

    def build_codec(self) -> ScheduleCodec:
        return ScheduleCodec(
            shifts=[shift.to_range() for shift in self.shifts],
            block_minutes=self.block_minutes,
        )

    def build_planner(self) -> SlotPlanner:
        return SlotPlanner(timezone=self.timezone, slot_minutes=self.slot_minutes)

    def resolve_data_file(self, config_path: Path) -> Path:
        """Resolve a relative data_file against the config file's directory."""
        if self.data_file.is_absolute():
            return self.data_file
        return config_path.parent / self.data_file

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "PlannerConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            PlannerConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
