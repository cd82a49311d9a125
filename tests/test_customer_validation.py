"""
Unit tests for customer field validation and merge helpers.

These run without a database or app context.
"""

from datetime import date

import pytest

from app.portal.modules.customers.service import (
    PROFILE_FIELDS,
    clean_customer_fields,
    merge_fields,
    parse_customer_id,
)
from app.portal.modules.customers.utils import is_valid_email, parse_date_of_birth, password_errors


def _valid(**overrides):
    values = {"firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com"}
    values.update(overrides)
    return values


class TestEmail:
    def test_accepts_common_addresses(self):
        assert is_valid_email("a@b.com")
        assert is_valid_email("first.last@example.co.uk")
        assert is_valid_email("first-last@mail-host.org")

    def test_rejects_malformed(self):
        assert not is_valid_email("")
        assert not is_valid_email("a@b")
        assert not is_valid_email("a@b.c")
        assert not is_valid_email("@b.com")
        assert not is_valid_email("a b@c.com")
        assert not is_valid_email("a..b@c.com")

    def test_long_local_part_does_not_hang(self):
        assert not is_valid_email("a" * 5000 + "!")

    def test_length_capped_at_column_width(self):
        domain = "@example.com"
        assert is_valid_email("a" * (320 - len(domain)) + domain)
        assert not is_valid_email("a" * (321 - len(domain)) + domain)

    def test_email_is_trimmed_and_lowercased(self):
        cleaned, errs = clean_customer_fields(_valid(email="  Ada@Example.COM "))
        assert errs == []
        assert cleaned["email"] == "ada@example.com"


class TestCleanCustomerFields:
    def test_minimal_record_gets_defaults(self):
        cleaned, errs = clean_customer_fields(_valid())
        assert errs == []
        assert cleaned["customer_type"] == "Individual"
        assert cleaned["is_active"] is True
        assert cleaned["phone_number"] is None
        assert cleaned["address_city"] is None

    def test_required_fields_report_one_message_each(self):
        _, errs = clean_customer_fields({})
        assert errs == ["Please add a first name", "Please add a last name", "Please add an email"]

    def test_whitespace_names_count_as_missing(self):
        _, errs = clean_customer_fields(_valid(firstName="   "))
        assert errs == ["Please add a first name"]

    def test_names_and_address_are_trimmed(self):
        cleaned, errs = clean_customer_fields(
            _valid(firstName="  Ada ", address={"city": " London ", "zipCode": "   "})
        )
        assert errs == []
        assert cleaned["first_name"] == "Ada"
        assert cleaned["address_city"] == "London"
        assert cleaned["address_zip_code"] is None

    def test_invalid_email(self):
        _, errs = clean_customer_fields(_valid(email="nope"))
        assert errs == ["Please add a valid email"]

    def test_over_long_email(self):
        _, errs = clean_customer_fields(_valid(email="a" * 400 + "@b.com"))
        assert errs == ["Please add a valid email"]

    @pytest.mark.parametrize("value", ["Gold", "individual", 3])
    def test_customer_type_outside_enum(self, value):
        _, errs = clean_customer_fields(_valid(customerType=value))
        assert errs == [f"`{value}` is not a valid customer type"]

    def test_business_customer_type(self):
        cleaned, errs = clean_customer_fields(_valid(customerType="Business"))
        assert errs == []
        assert cleaned["customer_type"] == "Business"

    def test_address_must_be_object(self):
        _, errs = clean_customer_fields(_valid(address="1 Main St"))
        assert errs == ["Address must be an object"]

    def test_non_string_values(self):
        _, errs = clean_customer_fields(_valid(phoneNumber=5551234, address={"city": 7}))
        assert errs == ["phoneNumber must be a string", "address.city must be a string"]

    def test_bad_date_of_birth(self):
        _, errs = clean_customer_fields(_valid(dateOfBirth="17/05/1990"))
        assert errs == ["Please add a valid date of birth"]

    def test_is_active_must_be_boolean(self):
        _, errs = clean_customer_fields(_valid(isActive="no"))
        assert errs == ["isActive must be a boolean"]


class TestDateOfBirth:
    def test_plain_date(self):
        assert parse_date_of_birth("1990-05-17") == date(1990, 5, 17)

    def test_iso_datetime_keeps_date_part(self):
        assert parse_date_of_birth("1990-05-17T00:00:00.000Z") == date(1990, 5, 17)

    def test_empty_is_none(self):
        assert parse_date_of_birth("") is None
        assert parse_date_of_birth(None) is None

    def test_impossible_date(self):
        with pytest.raises(ValueError):
            parse_date_of_birth("1990-13-01")


class TestPassword:
    def test_missing(self):
        assert password_errors(None) == ["Please add a password"]
        assert password_errors("") == ["Please add a password"]

    def test_too_short(self):
        assert password_errors("12345") == ["Password must be at least 6 characters"]

    def test_long_enough(self):
        assert password_errors("123456") == []


class TestMergeFields:
    def test_address_merges_key_by_key(self):
        current = {
            "firstName": "Ada",
            "address": {"street": "1 Main St", "city": "London", "state": None, "zipCode": "N1", "country": "UK"},
        }
        merged = merge_fields(current, {"address": {"city": "X"}}, PROFILE_FIELDS)
        assert merged["address"] == {"street": "1 Main St", "city": "X", "state": None, "zipCode": "N1", "country": "UK"}
        # the merge base is not mutated
        assert current["address"]["city"] == "London"

    def test_keys_outside_allowed_set_are_ignored(self):
        merged = merge_fields({"email": "a@b.com"}, {"email": "x@y.com", "password": "secret1"}, PROFILE_FIELDS)
        assert merged["email"] == "a@b.com"
        assert "password" not in merged


class TestParseCustomerId:
    @pytest.mark.parametrize("raw,expected", [("12", 12), (12, 12), (" 7 ", 7), ("2147483647", 2147483647)])
    def test_valid(self, raw, expected):
        assert parse_customer_id(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["abc", "", None, "0", "-1", "1.5", "６", True, "2147483648", "99999999999999999999", 2**31, "9" * 5000],
    )
    def test_malformed(self, raw):
        assert parse_customer_id(raw) is None
