import pytest

from storefront.address.service import normalize_address, require_valid_address, validate_address
from storefront.errors import CheckoutError, ErrorKind

VALID = {"address1": "12 Main St", "city": "Boston", "state": "MA", "zip": "02110", "country": "us"}


def test_valid_address():
    assert validate_address(VALID) == (True, [])


def test_normalize_trims_and_uppercases_country():
    out = normalize_address({**VALID, "city": "  Boston ", "address2": None})
    assert out["city"] == "Boston"
    assert out["country"] == "US"
    assert out["address2"] == ""


@pytest.mark.parametrize(
    "override,message",
    [
        ({"address1": "1"}, "Street address is required"),
        ({"city": ""}, "City is required"),
        ({"country": "USA"}, "Valid country code is required"),
        ({"zip": ""}, "Valid postal code is required"),
        ({"state": ""}, "State/Province is required"),
    ],
)
def test_invalid_fields(override, message):
    valid, errors = validate_address({**VALID, **override})
    assert not valid
    assert message in errors


def test_postal_code_and_state_only_where_required():
    assert validate_address({"address1": "1 Rue X", "city": "Dublin", "country": "IE"}) == (True, [])
    valid, errors = validate_address({"address1": "1 High St", "city": "Leeds", "country": "GB"})
    assert errors == ["Valid postal code is required"]


def test_require_valid_address_raises_address_error():
    with pytest.raises(CheckoutError) as exc:
        require_valid_address({"country": "US"})
    err = exc.value
    assert err.kind == ErrorKind.ADDRESS
    assert err.http_status == 422
    assert err.code == "INVALID_ADDRESS"
    assert len(err.details["errors"]) == 4
