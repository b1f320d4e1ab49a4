"""Read GameCube controllers through the Nintendo Wii U / Switch USB adapter."""

from gcadapter.adapter import AdapterSession
from gcadapter.axis import (
    InvertedSignedAxis,
    SignedAxis,
    UnsignedAxis,
    normalize_signed_centered,
    normalize_signed_centered_inverted,
    normalize_signed_uncentered,
    normalize_signed_uncentered_inverted,
    normalize_unsigned,
)
from gcadapter.buttons import AnalogAxis, ButtonName
from gcadapter.packet import (
    Buttons,
    Controller,
    ControllerInfo,
    ControllerStatus,
    ControllerType,
    DecodeLengthError,
    Packet,
    Stick,
    Triggers,
    Unrecognized,
    encode_rumble,
    parse_packet,
)
from gcadapter.transport import AdapterNotFoundError, Transport, TransportError, UsbTransport

__all__ = [
    "AdapterNotFoundError",
    "AdapterSession",
    "AnalogAxis",
    "ButtonName",
    "Buttons",
    "Controller",
    "ControllerInfo",
    "ControllerStatus",
    "ControllerType",
    "DecodeLengthError",
    "InvertedSignedAxis",
    "Packet",
    "SignedAxis",
    "Stick",
    "Transport",
    "TransportError",
    "Triggers",
    "UnsignedAxis",
    "Unrecognized",
    "UsbTransport",
    "encode_rumble",
    "normalize_signed_centered",
    "normalize_signed_centered_inverted",
    "normalize_signed_uncentered",
    "normalize_signed_uncentered_inverted",
    "normalize_unsigned",
    "parse_packet",
]
