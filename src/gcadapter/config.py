"""gcadapter configuration - Pydantic v2 based."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

RawByte = Annotated[int, Field(ge=0, le=255)]


class UsbConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor_id: Annotated[int, Field(ge=0, le=0xFFFF)] = 0x057E
    product_id: Annotated[int, Field(ge=0, le=0xFFFF)] = 0x0337
    interface: Annotated[int, Field(ge=0)] = 0
    endpoint_in: RawByte = 0x81
    endpoint_out: RawByte = 0x02
    timeout_ms: Annotated[int, Field(ge=0)] = 0
    """Per-transfer timeout in milliseconds. 0 = block until the transfer completes."""
    detach_kernel_driver: bool = True
    """Detach an active kernel driver on open and reattach it on close."""


class StickCalibration(BaseModel):
    """Measured rest position of one controller's sticks. None = nominal center."""

    model_config = ConfigDict(frozen=True)

    left_x: RawByte | None = None
    left_y: RawByte | None = None
    right_x: RawByte | None = None
    right_y: RawByte | None = None


class ControllerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    refresh_on_start: bool = True
    """Flush the adapter's buffered frames before reading events."""
    stick_deadzone: Annotated[float, Field(ge=0.0, lt=1.0)] = 0.1
    calibration: dict[int, StickCalibration] = Field(default_factory=dict)
    """Stick centers per port number (1-4)."""

    @field_validator("calibration")
    @classmethod
    def calibration_ports_valid(
        cls, v: dict[int, StickCalibration]
    ) -> dict[int, StickCalibration]:
        for port in v:
            if not 1 <= port <= 4:
                raise ValueError(f"Calibration port must be 1-4, got {port}.")
        return v


class RumbleConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    patterns: dict[str, list[tuple[bool, int]]] = Field(default_factory=dict)
    """Named rumble patterns: {name: [(on, duration_ms), ...]}"""


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    usb: UsbConfig = Field(default_factory=UsbConfig)
    controller: ControllerConfig = Field(default_factory=ControllerConfig)
    rumble: RumbleConfig = Field(default_factory=RumbleConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> AppConfig:
        """Load config from TOML file. Uses defaults if file not found."""
        from gcadapter.paths import default_config_path

        config_path = path or default_config_path()
        if not config_path.exists():
            return cls()

        with config_path.open("rb") as f:
            data = tomllib.load(f)

        return cls.model_validate(data)

    @classmethod
    def load_with_override(
        cls,
        base: Path | None = None,
        override: Path | None = None,
    ) -> AppConfig:
        """Load base config, then merge override TOML on top."""
        from gcadapter.paths import default_config_path

        base_path = base or default_config_path()
        base_data: dict[str, object] = {}
        if base_path.exists():
            with base_path.open("rb") as f:
                base_data = tomllib.load(f)

        if override and override.exists():
            with override.open("rb") as f:
                override_data = tomllib.load(f)
            base_data = _deep_merge(base_data, override_data)

        return cls.model_validate(base_data)


def _deep_merge(base: dict[str, object], override: dict[str, object]) -> dict[str, object]:
    """Recursively merge override into base."""
    result: dict[str, object] = dict(base)
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = _deep_merge(base_value, value)
        else:
            result[key] = value
    return result
