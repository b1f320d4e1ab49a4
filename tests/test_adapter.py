from unittest.mock import patch

import pytest

from gcadapter.adapter import REFRESH_POLLS, AdapterSession
from gcadapter.config import UsbConfig
from gcadapter.packet import FRAME_SIZE, INIT_COMMAND, ControllerType
from gcadapter.transport import TransportError

RUMBLE_OFF = bytes([0x11, 0, 0, 0, 0])
ACK = bytes(FRAME_SIZE)


def test_open_sends_init_once(make_transport):
    transport = make_transport()
    session = AdapterSession(transport)
    session.open()
    session.open()
    assert transport.writes == [INIT_COMMAND]
    assert session.is_open


def test_operations_need_open_session(make_transport):
    session = AdapterSession(make_transport(idle=ACK))
    with pytest.raises(RuntimeError, match="not open"):
        session.read_controllers()
    with pytest.raises(RuntimeError, match="not open"):
        session.set_rumble([True] * 4)


def test_set_rumble_writes_command_and_reads_ack(make_transport):
    transport = make_transport(idle=ACK)
    with AdapterSession(transport) as session:
        session.set_rumble([False, False, False, True])
        assert transport.writes[-1] == bytes([0x11, 0, 0, 0, 1])
        assert transport.reads == 1


def test_refresh_inputs_drains_ten_frames(make_transport):
    transport = make_transport(idle=ACK)
    with AdapterSession(transport) as session:
        session.refresh_inputs()
        assert transport.reads == REFRESH_POLLS == 10


def test_read_controllers_decodes_frame(make_transport, make_frame, make_controller):
    frame = make_frame(make_controller(), make_controller(status=0x20))
    with AdapterSession(make_transport([frame])) as session:
        ports = session.read_controllers()

    assert len(ports) == 4
    assert ports[0].controller_type is ControllerType.NORMAL
    assert ports[1].controller_type is ControllerType.WAVEBIRD
    assert [port.connected() for port in ports] == [True, True, False, False]


def test_read_controllers_unrecognized_frame_is_all_disconnected(make_transport):
    noise = bytes([0x05]) + bytes([0x10] * 36)
    with AdapterSession(make_transport([noise])) as session:
        ports = session.read_controllers()

    assert len(ports) == 4
    assert not any(port.connected() for port in ports)


def test_poll_reports_unrecognized_frame_as_none(make_transport, make_frame, make_controller):
    noise = bytes([0x05]) + bytes(36)
    frame = make_frame(make_controller())
    with AdapterSession(make_transport([noise, frame])) as session:
        assert session.poll() is None
        ports = session.poll()

    assert ports is not None
    assert ports[0].connected()


def test_read_controllers_propagates_transport_error(make_transport):
    with AdapterSession(make_transport()) as session, pytest.raises(TransportError):
        session.read_controllers()


def test_exit_turns_rumble_off_and_closes(make_transport):
    transport = make_transport(idle=ACK)
    with AdapterSession(transport) as session:
        session.set_rumble([True] * 4)

    assert transport.writes[-1] == RUMBLE_OFF
    assert transport.closed


def test_exit_turns_rumble_off_on_error(make_transport):
    transport = make_transport(idle=ACK)
    with pytest.raises(RuntimeError, match="boom"), AdapterSession(transport):
        raise RuntimeError("boom")

    assert transport.writes == [INIT_COMMAND, RUMBLE_OFF]
    assert transport.closed


def test_close_swallows_transport_errors(make_transport):
    transport = make_transport(idle=ACK)
    session = AdapterSession(transport)
    session.open()
    transport.fail_writes = True

    session.close()

    assert transport.closed
    assert not session.is_open


def test_close_swallows_missing_ack(make_transport):
    transport = make_transport()
    session = AdapterSession(transport)
    session.open()
    session.close()
    assert transport.writes == [INIT_COMMAND, RUMBLE_OFF]
    assert transport.closed


def test_close_is_idempotent(make_transport):
    transport = make_transport(idle=ACK)
    session = AdapterSession(transport)
    session.open()
    session.close()
    session.close()
    assert transport.writes.count(RUMBLE_OFF) == 1

    with pytest.raises(RuntimeError, match="closed"):
        session.open()


def test_close_without_open_still_stops_rumble(make_transport):
    transport = make_transport(idle=ACK)
    AdapterSession(transport).close()
    assert transport.writes == [RUMBLE_OFF]
    assert transport.closed


def test_failed_init_still_closes_transport(make_transport):
    transport = make_transport(idle=ACK)
    transport.fail_writes = True

    with pytest.raises(TransportError), AdapterSession(transport):
        pass

    assert transport.writes == []
    assert transport.closed


def test_from_usb_opens_transport():
    config = UsbConfig(timeout_ms=100)
    with patch("gcadapter.adapter.UsbTransport") as mock_transport_cls:
        session = AdapterSession.from_usb(config)

    mock_transport_cls.assert_called_once_with(config)
    mock_transport_cls.return_value.open.assert_called_once()
    session.open()
    mock_transport_cls.return_value.write.assert_called_once_with(INIT_COMMAND)
