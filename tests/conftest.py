from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable

import pytest

from gcadapter.axis import InvertedSignedAxis, SignedAxis, UnsignedAxis
from gcadapter.packet import (
    PORT_COUNT,
    Buttons,
    Controller,
    ControllerInfo,
    ControllerStatus,
    Stick,
    Triggers,
)
from gcadapter.transport import Transport, TransportError

NORMAL_STATUS = 0x14  # normal controller, rumble power present


class FakeTransport(Transport):
    """Records writes and serves queued frames.

    When the queue is empty, `idle` is returned if set, otherwise reads fail.
    """

    def __init__(self, frames: Iterable[bytes] = (), idle: bytes | None = None) -> None:
        self.frames: deque[bytes] = deque(frames)
        self.idle = idle
        self.writes: list[bytes] = []
        self.reads = 0
        self.fail_writes = False
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise TransportError("write failed")
        self.writes.append(bytes(data))

    def read_exact(self, size: int) -> bytes:
        self.reads += 1
        if self.frames:
            frame = self.frames.popleft()
        elif self.idle is not None:
            frame = self.idle
        else:
            raise TransportError("no more frames")
        assert len(frame) == size
        return frame

    def close(self) -> None:
        self.closed = True


def build_controller(
    status: int = NORMAL_STATUS,
    buttons: Buttons | None = None,
    lx: int = 128,
    ly: int = 128,
    rx: int = 128,
    ry: int = 128,
    tl: int = 0,
    tr: int = 0,
) -> Controller:
    return Controller(
        status=ControllerStatus.from_byte(status),
        buttons=buttons or Buttons(),
        left_stick=Stick(SignedAxis(lx), InvertedSignedAxis(ly)),
        right_stick=Stick(SignedAxis(rx), InvertedSignedAxis(ry)),
        triggers=Triggers(UnsignedAxis(tl), UnsignedAxis(tr)),
    )


def build_frame(*ports: Controller) -> bytes:
    """Controller-info frame; missing ports are disconnected."""
    padded = list(ports) + [Controller()] * (PORT_COUNT - len(ports))
    return ControllerInfo(tuple(padded)).to_bytes()


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def make_controller() -> Callable[..., Controller]:
    return build_controller


@pytest.fixture
def make_frame() -> Callable[..., bytes]:
    return build_frame
