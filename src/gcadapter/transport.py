"""USB transport abstraction and the pyusb implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import usb.core
import usb.util

from gcadapter.config import UsbConfig

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when a transport cannot complete a transfer."""


class AdapterNotFoundError(TransportError):
    """Raised when no adapter with the configured VID/PID is connected."""


class Transport(ABC):
    """Blocking, fixed-size I/O with the adapter's interrupt endpoints."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Send one command."""

    @abstractmethod
    def read_exact(self, size: int) -> bytes:
        """Block until exactly `size` bytes are read."""

    def close(self) -> None:  # noqa: B027 - optional hook
        """Release the underlying device. Default: nothing to release."""


class UsbTransport(Transport):
    """Adapter access through pyusb/libusb.

    Usage::

        with UsbTransport(config) as transport:
            session = AdapterSession(transport)
            ...
    """

    def __init__(self, config: UsbConfig | None = None) -> None:
        self._config = config or UsbConfig()
        self._device: usb.core.Device | None = None
        self._reattach = False

    def open(self) -> None:
        """Find the adapter, detach any kernel driver and claim the interface."""
        cfg = self._config
        try:
            device = usb.core.find(idVendor=cfg.vendor_id, idProduct=cfg.product_id)
        except usb.core.NoBackendError as e:
            raise TransportError("No libusb backend available.") from e
        if device is None:
            raise AdapterNotFoundError(
                f"No adapter found with id {cfg.vendor_id:04x}:{cfg.product_id:04x}."
            )

        try:
            if cfg.detach_kernel_driver and _kernel_driver_active(device, cfg.interface):
                device.detach_kernel_driver(cfg.interface)
                self._reattach = True
                logger.info("Detached kernel driver from interface %d.", cfg.interface)
            usb.util.claim_interface(device, cfg.interface)
        except usb.core.USBError as e:
            raise TransportError(f"Could not claim adapter interface: {e}") from e

        self._device = device
        logger.info(
            "Opened adapter %04x:%04x (bus %s, address %s)",
            cfg.vendor_id,
            cfg.product_id,
            getattr(device, "bus", "?"),
            getattr(device, "address", "?"),
        )

    def close(self) -> None:
        """Release the interface and give the device back to its kernel driver."""
        device = self._device
        if device is None:
            return
        self._device = None
        interface = self._config.interface
        try:
            usb.util.release_interface(device, interface)
            if self._reattach:
                device.attach_kernel_driver(interface)
        except usb.core.USBError as e:
            logger.warning("Adapter release failed: %s", e)
        finally:
            self._reattach = False
            usb.util.dispose_resources(device)
            logger.info("Adapter released.")

    def write(self, data: bytes) -> None:
        device = self._require_device()
        try:
            written = device.write(self._config.endpoint_out, data, self._config.timeout_ms)
        except usb.core.USBError as e:
            raise TransportError(f"Write to adapter failed: {e}") from e
        if written != len(data):
            raise TransportError(f"Short write to adapter: {written} of {len(data)} bytes.")

    def read_exact(self, size: int) -> bytes:
        device = self._require_device()
        try:
            data = device.read(self._config.endpoint_in, size, self._config.timeout_ms)
        except usb.core.USBError as e:
            raise TransportError(f"Read from adapter failed: {e}") from e
        if len(data) != size:
            raise TransportError(f"Short read from adapter: {len(data)} of {size} bytes.")
        return bytes(data)

    def __enter__(self) -> UsbTransport:
        self.open()
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _require_device(self) -> usb.core.Device:
        if self._device is None:
            raise TransportError("USB transport is not open.")
        return self._device


def _kernel_driver_active(device: usb.core.Device, interface: int) -> bool:
    try:
        return bool(device.is_kernel_driver_active(interface))
    except NotImplementedError:
        # Backends without kernel driver support (e.g. Windows)
        return False
