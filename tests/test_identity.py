import pytest

from webcam_discovery.discovery import parse_identity


@pytest.mark.parametrize(
    "label, name, display_name, device_id",
    [
        ("Cam0:extra", "A:B", "A", "B"),
        ("L:X", "A", "A", "L"),
        ("Cam0", "A:B:C", "A", "B"),
        ("Cam0:extra", "MyCam:dev0", "MyCam", "dev0"),
        ("L", "", "", "L"),
        ("", "A", "A", ""),
    ],
)
def test_parse_identity_decision_table(label, name, display_name, device_id):
    identity = parse_identity(label, name)

    assert identity.display_name == display_name
    assert identity.id == device_id


def test_short_label_is_first_label_segment():
    assert parse_identity("video0:usb-1234:extra", "A:B").label == "video0"
