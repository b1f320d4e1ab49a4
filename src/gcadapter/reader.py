"""Async controller event reader."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from gcadapter.adapter import AdapterSession
from gcadapter.axis import InvertedSignedAxis, SignedAxis, normalize_unsigned
from gcadapter.buttons import BUTTON_MASK_MAP, AnalogAxis, ButtonName
from gcadapter.config import ControllerConfig
from gcadapter.packet import DISCONNECTED_PORTS, Controller, ControllerType
from gcadapter.transport import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionEvent:
    """A controller was plugged into or removed from a port."""

    port: int
    connected: bool
    controller_type: ControllerType


@dataclass(frozen=True)
class ButtonEvent:
    """A button press or release event."""

    port: int
    button: ButtonName
    pressed: bool  # True = pressed, False = released


@dataclass(frozen=True)
class AnalogEvent:
    """A stick or trigger movement event."""

    port: int
    axis: AnalogAxis
    value: int
    """Raw axis byte."""
    normalized: float
    """[-1.0, 1.0] for sticks after calibration and deadzone, [0.0, 1.0] for triggers."""


# Union type for all controller events
ControllerEvent = ConnectionEvent | ButtonEvent | AnalogEvent

_Y_AXES = (AnalogAxis.LEFT_Y, AnalogAxis.RIGHT_Y)
_TRIGGER_AXES = (AnalogAxis.LEFT_TRIGGER, AnalogAxis.RIGHT_TRIGGER)


class ControllerReader:
    """Polls an adapter session and emits per-port change events.

    Ports are numbered 1-4. Usage::

        async with ControllerReader(session, config) as reader:
            async for event in reader.events():
                ...
    """

    def __init__(self, session: AdapterSession, config: ControllerConfig) -> None:
        self._session = session
        self._config = config
        self._queue: asyncio.Queue[ControllerEvent | None] = asyncio.Queue()
        self._read_task: asyncio.Task[None] | None = None
        self._pending_read: asyncio.Future[tuple[Controller, ...] | None] | None = None
        self._running = False
        self._ports: tuple[Controller, ...] = DISCONNECTED_PORTS

    async def start(self) -> None:
        """Flush stale frames and start polling."""
        if self._config.refresh_on_start:
            await asyncio.to_thread(self._session.refresh_inputs)
        self._running = True
        self._read_task = asyncio.create_task(self._read_loop(), name="controller-reader")

    async def stop(self) -> None:
        """Stop polling. The session stays open.

        Returns only after an in-flight USB read has completed, so the
        session is free for other transfers.
        """
        self._running = False
        await self._queue.put(None)  # sentinel

        if self._read_task is not None:
            self._read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._read_task
            self._read_task = None

        # Cancelling the task does not stop the worker thread
        if self._pending_read is not None:
            with contextlib.suppress(TransportError):
                await self._pending_read
            self._pending_read = None

    async def events(self) -> AsyncIterator[ControllerEvent]:
        """Async iterator yielding controller events."""
        while True:
            event = await self._queue.get()
            if event is None:
                break
            yield event

    async def __aenter__(self) -> ControllerReader:
        await self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.stop()

    # --- Internal ---

    async def _read_loop(self) -> None:
        try:
            while self._running:
                self._pending_read = asyncio.ensure_future(asyncio.to_thread(self._session.poll))
                ports = await asyncio.shield(self._pending_read)
                if ports is None:
                    continue
                for index, (old, new) in enumerate(zip(self._ports, ports, strict=True)):
                    for event in self._diff(index + 1, old, new):
                        await self._queue.put(event)
                self._ports = ports
        except TransportError as e:
            logger.error("Adapter read failed: %s", e)
        finally:
            await self._queue.put(None)

    def _diff(self, port: int, old: Controller, new: Controller) -> list[ControllerEvent]:
        """Events that turn `old` into `new`. A newly connected port reports its full state."""
        events: list[ControllerEvent] = []
        was_connected = old.connected()
        is_connected = new.connected()

        if was_connected != is_connected or (
            is_connected and old.controller_type != new.controller_type
        ):
            events.append(ConnectionEvent(port, is_connected, new.controller_type))
        if not is_connected:
            return events

        old_pressed = old.buttons.pressed() if was_connected else frozenset()
        new_pressed = new.buttons.pressed()
        for button in BUTTON_MASK_MAP:
            if (button in old_pressed) != (button in new_pressed):
                events.append(ButtonEvent(port, button, button in new_pressed))

        old_axes = _axis_bytes(old)
        for axis, raw in _axis_bytes(new).items():
            if was_connected and old_axes[axis] == raw:
                continue
            events.append(AnalogEvent(port, axis, raw, self._normalize(port, axis, raw)))
        return events

    def _normalize(self, port: int, axis: AnalogAxis, raw: int) -> float:
        """Normalize a raw axis byte, applying the port's stick center and the deadzone."""
        if axis in _TRIGGER_AXES:
            return normalize_unsigned(raw)

        calibration = self._config.calibration.get(port)
        center = getattr(calibration, axis) if calibration is not None else None
        if axis in _Y_AXES:
            normalized = InvertedSignedAxis(raw).value(center)
        else:
            normalized = SignedAxis(raw).value(center)

        deadzone = self._config.stick_deadzone
        if abs(normalized) < deadzone:
            return 0.0
        # Scale so deadzone edge = 0.0 and max = 1.0
        sign = 1.0 if normalized > 0 else -1.0
        return sign * (abs(normalized) - deadzone) / (1.0 - deadzone)


def _axis_bytes(controller: Controller) -> dict[AnalogAxis, int]:
    return {
        AnalogAxis.LEFT_X: controller.left_stick.x.raw,
        AnalogAxis.LEFT_Y: controller.left_stick.y.raw,
        AnalogAxis.RIGHT_X: controller.right_stick.x.raw,
        AnalogAxis.RIGHT_Y: controller.right_stick.y.raw,
        AnalogAxis.LEFT_TRIGGER: controller.triggers.left.raw,
        AnalogAxis.RIGHT_TRIGGER: controller.triggers.right.raw,
    }
