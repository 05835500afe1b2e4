import pytest

from conftest import FakeDriver, hd15, vga30
from webcam_discovery.discovery import get_properties
from webcam_discovery.drivers import DriverCloseError, DriverOpenError, DriverPropertiesError
from webcam_discovery.models import DriverState


def test_closed_driver_is_opened_read_and_closed_again():
    driver = FakeDriver("d0", "Cam0", "MyCam:dev0", formats=[vga30(), hd15()])

    formats = get_properties(driver)

    assert formats == [vga30(), hd15()]
    assert driver.calls == ["open", "properties", "close"]
    assert driver.status() == DriverState.CLOSED


def test_open_driver_is_left_open():
    driver = FakeDriver("d0", "Cam0", "MyCam:dev0", formats=[vga30()], state=DriverState.OPEN)

    assert get_properties(driver) == [vga30()]
    assert driver.calls == ["properties"]
    assert driver.status() == DriverState.OPEN


def test_running_driver_is_not_touched():
    driver = FakeDriver("d0", "Cam0", "MyCam:dev0", formats=[vga30()], state=DriverState.RUNNING)

    get_properties(driver)

    assert "open" not in driver.calls
    assert "close" not in driver.calls
    assert driver.status() == DriverState.RUNNING


def test_open_failure_skips_property_read():
    driver = FakeDriver("d0", "Cam0", "MyCam:dev0", formats=[vga30()], open_error=OSError("busy"))

    with pytest.raises(DriverOpenError):
        get_properties(driver)

    assert driver.calls == ["open"]
    assert driver.status() == DriverState.CLOSED


def test_read_failure_still_closes():
    driver = FakeDriver("d0", "Cam0", "MyCam:dev0", read_error=RuntimeError("boom"))

    with pytest.raises(DriverPropertiesError):
        get_properties(driver)

    assert driver.calls == ["open", "properties", "close"]
    assert driver.status() == DriverState.CLOSED


def test_close_failure_replaces_successful_read():
    driver = FakeDriver("d0", "Cam0", "MyCam:dev0", formats=[vga30()], close_error=OSError("stuck"))

    with pytest.raises(DriverCloseError):
        get_properties(driver)

    assert driver.status() == DriverState.ERROR


def test_close_failure_keeps_read_error_as_context():
    driver = FakeDriver(
        "d0", "Cam0", "MyCam:dev0", read_error=RuntimeError("boom"), close_error=OSError("stuck")
    )

    with pytest.raises(DriverCloseError) as excinfo:
        get_properties(driver)

    chain = []
    exc = excinfo.value
    while exc is not None:
        chain.append(exc)
        exc = exc.__context__
    assert any(isinstance(e, DriverPropertiesError) for e in chain)
