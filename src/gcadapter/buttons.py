"""Button and axis names and their bit positions in the adapter's port record."""

from __future__ import annotations

from enum import StrEnum


class ButtonName(StrEnum):
    """All GameCube controller buttons reported by the adapter."""

    A = "A"
    B = "B"
    X = "X"
    Y = "Y"
    DPAD_LEFT = "dpad_left"
    DPAD_RIGHT = "dpad_right"
    DPAD_DOWN = "dpad_down"
    DPAD_UP = "dpad_up"
    START = "start"
    Z = "Z"
    R = "R"  # Right trigger digital click
    L = "L"  # Left trigger digital click


class AnalogAxis(StrEnum):
    """Analog stick and trigger axes."""

    LEFT_X = "left_x"
    LEFT_Y = "left_y"
    RIGHT_X = "right_x"
    RIGHT_Y = "right_y"
    LEFT_TRIGGER = "left_trigger"
    RIGHT_TRIGGER = "right_trigger"


STICK_AXES: frozenset[AnalogAxis] = frozenset(
    {AnalogAxis.LEFT_X, AnalogAxis.LEFT_Y, AnalogAxis.RIGHT_X, AnalogAxis.RIGHT_Y}
)

# ButtonName -> mask in the 16-bit little-endian button field
# (byte 1 of the port record is the low byte). The top 4 bits are padding.
BUTTON_MASK_MAP: dict[ButtonName, int] = {
    ButtonName.A: 0x0001,
    ButtonName.B: 0x0002,
    ButtonName.X: 0x0004,
    ButtonName.Y: 0x0008,
    ButtonName.DPAD_LEFT: 0x0010,
    ButtonName.DPAD_RIGHT: 0x0020,
    ButtonName.DPAD_DOWN: 0x0040,
    ButtonName.DPAD_UP: 0x0080,
    ButtonName.START: 0x0100,
    ButtonName.Z: 0x0200,
    ButtonName.R: 0x0400,
    ButtonName.L: 0x0800,
}
