"""A connection to a GameCube controller adapter."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from gcadapter.config import UsbConfig
from gcadapter.packet import (
    DISCONNECTED_PORTS,
    FRAME_SIZE,
    INIT_COMMAND,
    PORT_COUNT,
    Controller,
    ControllerInfo,
    encode_rumble,
    parse_packet,
)
from gcadapter.transport import Transport, TransportError, UsbTransport

logger = logging.getLogger(__name__)

# The adapter buffers this many frames; reading them all yields a current one.
REFRESH_POLLS = 10

ALL_OFF: tuple[bool, ...] = (False,) * PORT_COUNT


class AdapterSession:
    """Drives the adapter over a Transport.

    Usage::

        with AdapterSession(transport) as session:
            session.refresh_inputs()
            ports = session.read_controllers()
            session.set_rumble([False, False, False, True])

    Leaving the block turns all rumble motors off, even when the block
    raised, and closes the transport.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._opened = False
        self._closed = False

    @classmethod
    def from_usb(cls, config: UsbConfig | None = None) -> AdapterSession:
        """Open the first adapter on the bus. The session owns the transport."""
        transport = UsbTransport(config)
        transport.open()
        return cls(transport)

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    def open(self) -> None:
        """Send the init command. Only the first call has an effect."""
        if self._closed:
            raise RuntimeError("Adapter session is closed.")
        if self._opened:
            return
        self._transport.write(INIT_COMMAND)
        self._opened = True
        logger.info("Adapter session opened.")

    def set_rumble(self, ports: Sequence[bool]) -> None:
        """Set rumble for all 4 ports at once."""
        self._require_open()
        self._transport.write(encode_rumble(ports))
        # acknowledgement frame
        self._transport.read_exact(FRAME_SIZE)

    def refresh_inputs(self) -> None:
        """Drain buffered frames so the next read_controllers() is current."""
        self._require_open()
        for _ in range(REFRESH_POLLS):
            self._transport.read_exact(FRAME_SIZE)

    def read_controllers(self) -> tuple[Controller, ...]:
        """Read the state of all 4 ports.

        Frames with an unknown marker are reported as 4 disconnected ports.
        """
        ports = self.poll()
        return DISCONNECTED_PORTS if ports is None else ports

    def poll(self) -> tuple[Controller, ...] | None:
        """Read one frame. Returns None if it is not a controller-state frame."""
        self._require_open()
        packet = parse_packet(self._transport.read_exact(FRAME_SIZE))
        if isinstance(packet, ControllerInfo):
            return packet.ports
        logger.debug("Ignoring frame with unknown marker 0x%02x", packet.marker)
        return None

    def close(self) -> None:
        """Turn all rumble off and release the transport. Never raises TransportError."""
        if self._closed:
            return
        self._closed = True
        try:
            self._transport.write(encode_rumble(ALL_OFF))
            self._transport.read_exact(FRAME_SIZE)
        except TransportError as e:
            logger.warning("Could not stop rumble on close: %s", e)
        finally:
            self._transport.close()
            logger.info("Adapter session closed.")

    def __enter__(self) -> AdapterSession:
        try:
            self.open()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _require_open(self) -> None:
        if not self.is_open:
            raise RuntimeError("Adapter session is not open.")
