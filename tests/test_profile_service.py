# =============================================================================
# tests/test_profile_service.py - Customer Account Tests
# =============================================================================

from unittest.mock import patch

import pytest

from app.exceptions import ValidationFailedError
from core.models.profile import AddressUpdate
from core.services.profile_service import BD_DISTRICTS, BD_DIVISIONS, ProfileService, compose_address
from tests.conftest import make_client

GET_CLIENT = "core.services.profile_service.SupabaseClient.get_client"


def _address(**overrides) -> AddressUpdate:
    fields = {
        "division": "Dhaka",
        "district": "Gazipur",
        "city": "Tongi",
        "road": "House 12, Road 4",
        "zip_code": "1230",
    }
    fields.update(overrides)
    return AddressUpdate(**fields)


class TestPhone:
    """Tests for the phone number form."""

    def test_international_prefix_is_normalized(self):
        client = make_client()
        with patch(GET_CLIENT, return_value=client):
            assert ProfileService.update_phone("u1", "+880 1712-345678") == {"phone": "01712345678"}
        client.queries["profiles"].update.assert_called_once_with({"phone": "01712345678"})

    @pytest.mark.parametrize("phone", ["01212345678", "0171234567", "", "abc"])
    def test_invalid_numbers(self, phone):
        with patch(GET_CLIENT) as get_client:
            with pytest.raises(ValidationFailedError):
                ProfileService.update_phone("u1", phone)
        get_client.assert_not_called()


class TestAddress:
    """Tests for the delivery address form."""

    def test_compose(self):
        assert compose_address(_address()) == "House 12, Road 4, Tongi, 1230, Gazipur, Dhaka"
        assert compose_address(_address(zip_code="")) == "House 12, Road 4, Tongi, Gazipur, Dhaka"

    def test_update_saves_composed_address(self):
        client = make_client()
        with patch(GET_CLIENT, return_value=client):
            updates = ProfileService.update_address("u1", _address(city="  Tongi "))

        assert updates["city"] == "Tongi"
        assert updates["address"] == "House 12, Road 4, Tongi, 1230, Gazipur, Dhaka"

    def test_required_fields(self):
        with pytest.raises(ValidationFailedError, match="required address fields"):
            ProfileService.update_address("u1", _address(road="  "))

    def test_zip_must_be_four_digits(self):
        with pytest.raises(ValidationFailedError, match="4 digits"):
            ProfileService.update_address("u1", _address(zip_code="12300"))


class TestLookups:
    """Tests for profile reads and reference data."""

    def test_role_defaults_to_customer(self):
        with patch("core.services.profile_service.SupabaseClient.fetch_profile", return_value=None):
            assert ProfileService.get_role("u1") == "customer"
            assert ProfileService.get_profile("u1") == {}

    def test_role_from_profile(self):
        with patch("core.services.profile_service.SupabaseClient.fetch_profile", return_value={"role": "seller"}):
            assert ProfileService.get_role("u1") == "seller"

    def test_every_division_has_districts(self):
        assert sorted(BD_DISTRICTS) == sorted(BD_DIVISIONS)
        assert len(BD_DIVISIONS) == 8
