import pytest

from app.core.phone import normalize_phone, to_msisdn


@pytest.mark.parametrize(
    "raw",
    [
        "9876543210",
        "+91 98765 43210",
        "919876543210",
        "09876543210",
        "(+91) 98765-43210",
        " 98765 43210 ",
    ],
)
def test_normalizes_common_inputs(raw):
    assert normalize_phone(raw) == "9876543210"


@pytest.mark.parametrize(
    "raw",
    [None, "", "12345", "5876543210", "98765432101", "abcdefghij", "+1 415 555 0100"],
)
def test_rejects_invalid(raw):
    assert normalize_phone(raw) is None


def test_to_msisdn():
    assert to_msisdn("9876543210") == "919876543210"
    assert to_msisdn("9876543210", "+91") == "919876543210"
