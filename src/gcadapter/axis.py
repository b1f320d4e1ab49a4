"""Raw 8-bit axis samples and their normalized readings.

Stick bytes are read as centered near 127.5, trigger bytes as pressure in
[0, 255]. A measured rest position (center) can be supplied at runtime, in
which case each side of the center is scaled by its own travel distance.
"""

from __future__ import annotations

from dataclasses import dataclass

RAW_MAX = 255
NOMINAL_CENTER = 127.5


def normalize_unsigned(raw: int) -> float:
    """Map a trigger byte to [0.0, 1.0]."""
    return raw / 255.0


def normalize_signed_uncentered(raw: int) -> float:
    """Map a stick byte to [-1.0, 1.0] around the nominal 127.5 center."""
    return (raw - NOMINAL_CENTER) / NOMINAL_CENTER


def normalize_signed_centered(raw: int, center: int) -> float:
    """Map a stick byte to [-1.0, 1.0] around a measured center.

    Travel above and below the center differs, so each side gets its own
    scale. A center of 0 or 255 leaves one side with no travel; that scale is
    clamped to 1.
    """
    offset = raw - center
    scale = max(1, RAW_MAX - center) if raw > center else max(1, center)
    return offset / scale


def normalize_signed_uncentered_inverted(raw: int) -> float:
    """Like :func:`normalize_signed_uncentered` with the axis flipped."""
    return normalize_signed_uncentered(RAW_MAX - raw)


def normalize_signed_centered_inverted(raw: int, center: int) -> float:
    """Like :func:`normalize_signed_centered` with the axis flipped.

    Both the sample and the center are flipped, so the result is exactly the
    negation of the non-inverted reading.
    """
    return normalize_signed_centered(RAW_MAX - raw, RAW_MAX - center)


def _check_raw(raw: int) -> None:
    if not 0 <= raw <= RAW_MAX:
        raise ValueError(f"Axis sample must be in 0..{RAW_MAX}, got {raw}.")


@dataclass(frozen=True)
class SignedAxis:
    """Stick axis where larger raw values point right/up."""

    raw: int = 0

    def __post_init__(self) -> None:
        _check_raw(self.raw)

    def value(self, center: int | None = None) -> float:
        if center is None:
            return normalize_signed_uncentered(self.raw)
        return normalize_signed_centered(self.raw, center)


@dataclass(frozen=True)
class InvertedSignedAxis:
    """Stick axis where larger raw values point the opposite way (hardware Y)."""

    raw: int = 0

    def __post_init__(self) -> None:
        _check_raw(self.raw)

    def value(self, center: int | None = None) -> float:
        if center is None:
            return normalize_signed_uncentered_inverted(self.raw)
        return normalize_signed_centered_inverted(self.raw, center)


@dataclass(frozen=True)
class UnsignedAxis:
    """Analog trigger pressure."""

    raw: int = 0

    def __post_init__(self) -> None:
        _check_raw(self.raw)

    def value(self) -> float:
        return normalize_unsigned(self.raw)
