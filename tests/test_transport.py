from array import array
from unittest.mock import MagicMock, patch

import pytest
import usb.core

from gcadapter.config import UsbConfig
from gcadapter.transport import AdapterNotFoundError, TransportError, UsbTransport


@pytest.fixture
def mock_device():
    device = MagicMock()
    device.is_kernel_driver_active.return_value = True
    device.write.side_effect = lambda endpoint, data, timeout: len(data)
    device.read.return_value = array("B", bytes(37))
    return device


@pytest.fixture
def mock_usb_util():
    with (
        patch("usb.util.claim_interface") as claim,
        patch("usb.util.release_interface") as release,
        patch("usb.util.dispose_resources") as dispose,
    ):
        yield claim, release, dispose


def test_open_io_and_close(mock_device, mock_usb_util):
    claim, release, dispose = mock_usb_util
    with patch("usb.core.find", return_value=mock_device) as mock_find:
        with UsbTransport(UsbConfig()) as transport:
            transport.write(b"\x13")
            assert transport.read_exact(37) == bytes(37)

    mock_find.assert_called_once_with(idVendor=0x057E, idProduct=0x0337)
    mock_device.detach_kernel_driver.assert_called_once_with(0)
    claim.assert_called_once_with(mock_device, 0)
    mock_device.write.assert_called_once_with(0x02, b"\x13", 0)
    mock_device.read.assert_called_once_with(0x81, 37, 0)
    release.assert_called_once_with(mock_device, 0)
    mock_device.attach_kernel_driver.assert_called_once_with(0)
    dispose.assert_called_once_with(mock_device)


def test_no_kernel_driver_is_left_alone(mock_device, mock_usb_util):
    mock_device.is_kernel_driver_active.return_value = False
    with patch("usb.core.find", return_value=mock_device), UsbTransport():
        pass
    mock_device.detach_kernel_driver.assert_not_called()
    mock_device.attach_kernel_driver.assert_not_called()


def test_kernel_driver_check_unsupported(mock_device, mock_usb_util):
    mock_device.is_kernel_driver_active.side_effect = NotImplementedError
    with patch("usb.core.find", return_value=mock_device), UsbTransport():
        pass
    mock_device.detach_kernel_driver.assert_not_called()


def test_detach_disabled(mock_device, mock_usb_util):
    config = UsbConfig(detach_kernel_driver=False)
    with patch("usb.core.find", return_value=mock_device), UsbTransport(config):
        pass
    mock_device.is_kernel_driver_active.assert_not_called()
    mock_device.detach_kernel_driver.assert_not_called()


def test_adapter_not_found():
    with patch("usb.core.find", return_value=None), pytest.raises(AdapterNotFoundError):
        UsbTransport().open()


def test_no_backend():
    with (
        patch("usb.core.find", side_effect=usb.core.NoBackendError("No backend available")),
        pytest.raises(TransportError, match="libusb"),
    ):
        UsbTransport().open()


def test_claim_failure(mock_device):
    with (
        patch("usb.core.find", return_value=mock_device),
        patch("usb.util.claim_interface", side_effect=usb.core.USBError("busy")),
        pytest.raises(TransportError, match="claim"),
    ):
        UsbTransport().open()


def test_usb_errors_become_transport_errors(mock_device, mock_usb_util):
    error = usb.core.USBError("pipe error")
    mock_device.read.side_effect = error
    with patch("usb.core.find", return_value=mock_device), UsbTransport() as transport:
        with pytest.raises(TransportError) as exc_info:
            transport.read_exact(37)
    assert exc_info.value.__cause__ is error


def test_short_read(mock_device, mock_usb_util):
    mock_device.read.return_value = array("B", bytes(20))
    with patch("usb.core.find", return_value=mock_device), UsbTransport() as transport:
        with pytest.raises(TransportError, match="Short read"):
            transport.read_exact(37)


def test_short_write(mock_device, mock_usb_util):
    mock_device.write.side_effect = lambda endpoint, data, timeout: 0
    with patch("usb.core.find", return_value=mock_device), UsbTransport() as transport:
        with pytest.raises(TransportError, match="Short write"):
            transport.write(b"\x11\x00\x00\x00\x00")


def test_io_before_open():
    with pytest.raises(TransportError, match="not open"):
        UsbTransport().write(b"\x13")


def test_release_errors_are_logged(mock_device, mock_usb_util):
    _, release, dispose = mock_usb_util
    release.side_effect = usb.core.USBError("gone")
    with patch("usb.core.find", return_value=mock_device), UsbTransport():
        pass
    dispose.assert_called_once_with(mock_device)
