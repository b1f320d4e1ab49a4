"""Adapter frame decoding and command encoding.

An input frame is 37 bytes: a marker byte (0x21 for controller state)
followed by four 9-byte port records::

    byte 0     status   unk, unk2, has_rumble, unk3, type (2 bits), padding (2 bits)
    bytes 1-2  buttons  16-bit little-endian, see BUTTON_MASK_MAP
    byte 3/4   left stick x / y
    byte 5/6   right stick x / y
    byte 7/8   left / right trigger

Decoding never rejects controller content; only the frame length is checked.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum

from gcadapter.axis import InvertedSignedAxis, SignedAxis, UnsignedAxis
from gcadapter.buttons import BUTTON_MASK_MAP, ButtonName

FRAME_SIZE = 37
PORT_COUNT = 4
CONTROLLER_INFO_MARKER = 0x21

RUMBLE_COMMAND = 0x11
INIT_COMMAND = bytes([0x13])

_PORT_RECORD = struct.Struct("<BH6B")

_STATUS_UNK = 0x01
_STATUS_UNK2 = 0x02
_STATUS_HAS_RUMBLE = 0x04
_STATUS_UNK3 = 0x08
_STATUS_TYPE_SHIFT = 4
_STATUS_TYPE_MASK = 0x03


class DecodeLengthError(ValueError):
    """Raised when a frame is not exactly FRAME_SIZE bytes."""

    def __init__(self, length: int) -> None:
        super().__init__(f"Expected a {FRAME_SIZE}-byte frame, got {length} bytes.")
        self.length = length


class ControllerType(IntEnum):
    DISCONNECTED = 0
    NORMAL = 1
    WAVEBIRD = 2
    INVALID = 3  # reserved encoding, treated as disconnected


@dataclass(frozen=True, repr=False)
class ControllerStatus:
    """Port status byte."""

    _bits: int = 0

    @classmethod
    def from_byte(cls, value: int) -> ControllerStatus:
        return cls(value & 0xFF)

    def to_byte(self) -> int:
        return self._bits

    @property
    def unk(self) -> bool:
        return bool(self._bits & _STATUS_UNK)

    @property
    def unk2(self) -> bool:
        return bool(self._bits & _STATUS_UNK2)

    @property
    def has_rumble(self) -> bool:
        """True when the adapter's second USB plug supplies rumble power."""
        return bool(self._bits & _STATUS_HAS_RUMBLE)

    @property
    def unk3(self) -> bool:
        return bool(self._bits & _STATUS_UNK3)

    @property
    def controller_type(self) -> ControllerType:
        return ControllerType((self._bits >> _STATUS_TYPE_SHIFT) & _STATUS_TYPE_MASK)

    def __repr__(self) -> str:
        return (
            f"ControllerStatus(controller_type={self.controller_type.name}, "
            f"has_rumble={self.has_rumble}, unk={self.unk}, unk2={self.unk2}, unk3={self.unk3})"
        )


def _button(name: ButtonName) -> property:
    mask = BUTTON_MASK_MAP[name]
    return property(lambda self: bool(self._bits & mask), doc=f"{name} pressed.")


@dataclass(frozen=True, repr=False)
class Buttons:
    """The 16-bit button field. Padding bits are kept as received."""

    _bits: int = 0

    a = _button(ButtonName.A)
    b = _button(ButtonName.B)
    x = _button(ButtonName.X)
    y = _button(ButtonName.Y)
    dpad_left = _button(ButtonName.DPAD_LEFT)
    dpad_right = _button(ButtonName.DPAD_RIGHT)
    dpad_down = _button(ButtonName.DPAD_DOWN)
    dpad_up = _button(ButtonName.DPAD_UP)
    start = _button(ButtonName.START)
    z = _button(ButtonName.Z)
    right_trigger = _button(ButtonName.R)
    left_trigger = _button(ButtonName.L)

    @classmethod
    def from_int(cls, value: int) -> Buttons:
        return cls(value & 0xFFFF)

    @classmethod
    def of(cls, *names: ButtonName) -> Buttons:
        """Build a button field with the given buttons pressed."""
        bits = 0
        for name in names:
            bits |= BUTTON_MASK_MAP[name]
        return cls(bits)

    def to_int(self) -> int:
        return self._bits

    def is_pressed(self, name: ButtonName) -> bool:
        return bool(self._bits & BUTTON_MASK_MAP[name])

    def pressed(self) -> frozenset[ButtonName]:
        return frozenset(name for name, mask in BUTTON_MASK_MAP.items() if self._bits & mask)

    def __repr__(self) -> str:
        names = [str(name) for name in BUTTON_MASK_MAP if self.is_pressed(name)]
        return f"Buttons({', '.join(names)})"


@dataclass(frozen=True)
class Stick:
    x: SignedAxis = field(default_factory=SignedAxis)
    y: InvertedSignedAxis = field(default_factory=InvertedSignedAxis)

    def coords(self, center: tuple[int, int] | None = None) -> tuple[float, float]:
        """Return the normalized (x, y) position, optionally around a measured center."""
        if center is None:
            return self.x.value(), self.y.value()
        center_x, center_y = center
        return self.x.value(center_x), self.y.value(center_y)


@dataclass(frozen=True)
class Triggers:
    left: UnsignedAxis = field(default_factory=UnsignedAxis)
    right: UnsignedAxis = field(default_factory=UnsignedAxis)


@dataclass(frozen=True, repr=False)
class Controller:
    """State of one adapter port.

    Only meaningful when connected(); for other ports every field but the
    status is leftover data.
    """

    status: ControllerStatus = field(default_factory=ControllerStatus)
    buttons: Buttons = field(default_factory=Buttons)
    left_stick: Stick = field(default_factory=Stick)
    right_stick: Stick = field(default_factory=Stick)
    triggers: Triggers = field(default_factory=Triggers)

    @classmethod
    def from_bytes(cls, record: bytes | bytearray | memoryview) -> Controller:
        """Decode one 9-byte port record."""
        status, buttons, lx, ly, rx, ry, tl, tr = _PORT_RECORD.unpack(record)
        return cls(
            status=ControllerStatus.from_byte(status),
            buttons=Buttons.from_int(buttons),
            left_stick=Stick(SignedAxis(lx), InvertedSignedAxis(ly)),
            right_stick=Stick(SignedAxis(rx), InvertedSignedAxis(ry)),
            triggers=Triggers(UnsignedAxis(tl), UnsignedAxis(tr)),
        )

    def to_bytes(self) -> bytes:
        return _PORT_RECORD.pack(
            self.status.to_byte(),
            self.buttons.to_int(),
            self.left_stick.x.raw,
            self.left_stick.y.raw,
            self.right_stick.x.raw,
            self.right_stick.y.raw,
            self.triggers.left.raw,
            self.triggers.right.raw,
        )

    @property
    def controller_type(self) -> ControllerType:
        return self.status.controller_type

    def connected(self) -> bool:
        return self.controller_type in (ControllerType.NORMAL, ControllerType.WAVEBIRD)

    def __repr__(self) -> str:
        if not self.connected():
            return "Controller(Disconnected)"
        return (
            f"Controller(status={self.status!r}, buttons={self.buttons!r}, "
            f"left_stick={self.left_stick!r}, right_stick={self.right_stick!r}, "
            f"triggers={self.triggers!r})"
        )


DISCONNECTED_PORTS: tuple[Controller, ...] = tuple(Controller() for _ in range(PORT_COUNT))


@dataclass(frozen=True)
class ControllerInfo:
    """A controller-state frame."""

    ports: tuple[Controller, ...]

    def __post_init__(self) -> None:
        if len(self.ports) != PORT_COUNT:
            raise ValueError(f"ControllerInfo needs {PORT_COUNT} ports, got {len(self.ports)}.")

    def to_bytes(self) -> bytes:
        return bytes([CONTROLLER_INFO_MARKER]) + b"".join(port.to_bytes() for port in self.ports)


@dataclass(frozen=True)
class Unrecognized:
    """A frame whose marker byte is not CONTROLLER_INFO_MARKER."""

    marker: int


Packet = ControllerInfo | Unrecognized


def parse_packet(buffer: bytes | bytearray | memoryview) -> Packet:
    """Decode one adapter frame.

    Raises DecodeLengthError if the buffer is not FRAME_SIZE bytes long.
    """
    if len(buffer) != FRAME_SIZE:
        raise DecodeLengthError(len(buffer))

    marker = buffer[0]
    if marker != CONTROLLER_INFO_MARKER:
        return Unrecognized(marker)

    view = memoryview(buffer)
    ports = tuple(
        Controller.from_bytes(view[offset : offset + _PORT_RECORD.size])
        for offset in range(1, FRAME_SIZE, _PORT_RECORD.size)
    )
    return ControllerInfo(ports)


def encode_rumble(ports: Sequence[bool]) -> bytes:
    """Build the rumble command for all four ports."""
    if len(ports) != PORT_COUNT:
        raise ValueError(f"Rumble needs a state for each of {PORT_COUNT} ports, got {len(ports)}.")
    return bytes([RUMBLE_COMMAND, *(1 if on else 0 for on in ports)])
