"""
Input validation tests.

Verifies:
- Amount rules (positive, max 2 decimals, numeric strings)
- Name, email, password, SWIFT code and payment method rules
- Free text is trimmed and HTML-escaped; passwords are only trimmed
- Unknown fields are rejected and every violation is listed
"""

from decimal import Decimal

import pytest

from payportal.validation import (
    ValidationError,
    parse_amount,
    validate_account_payload,
    validate_login_payload,
    validate_role_payload,
    validate_status_payload,
    validate_transaction_payload,
)


def _fields(exc: ValidationError) -> set:
    return {e["field"] for e in exc.errors}


class TestAmount:

    @pytest.mark.parametrize("raw", ["100.123", "0", "-5", "0.00", "abc", "1e5", "", True])
    def test_rejected(self, raw):
        with pytest.raises(ValueError):
            parse_amount(raw)

    @pytest.mark.parametrize("raw,expected", [
        ("100.00", Decimal("100.00")),
        ("100", Decimal("100.00")),
        (100, Decimal("100.00")),
        (100.5, Decimal("100.50")),
        ("0.01", Decimal("0.01")),
    ])
    def test_accepted(self, raw, expected):
        assert parse_amount(raw) == expected

    def test_above_column_capacity(self):
        with pytest.raises(ValueError):
            parse_amount("10000000000.00")


class TestAccountPayload:

    def test_valid_registration(self):
        cleaned = validate_account_payload({
            "name": "  Ann Lee ",
            "email": " Ann@X.com ",
            "password": " Abcdef1! ",
        })
        assert cleaned == {"name": "Ann Lee", "email": "ann@x.com", "password": "Abcdef1!"}

    def test_missing_required_fields_all_listed(self):
        with pytest.raises(ValidationError) as exc:
            validate_account_payload({})
        assert _fields(exc.value) == {"name", "email", "password"}

    def test_name_rules(self):
        for bad in ["A", "Ann3", "x" * 51, "<b>Ann</b>"]:
            with pytest.raises(ValidationError) as exc:
                validate_account_payload({"name": bad, "email": "a@b.co", "password": "Abcdef1!"})
            assert "name" in _fields(exc.value)

    def test_email_rules(self):
        with pytest.raises(ValidationError) as exc:
            validate_account_payload({"name": "Ann Lee", "email": "not-an-email", "password": "Abcdef1!"})
        assert _fields(exc.value) == {"email"}

    @pytest.mark.parametrize("password", ["Ab1!", "abcdef1!", "ABCDEF1!", "Abcdefg!", "Abcdefg1"])
    def test_weak_passwords(self, password):
        with pytest.raises(ValidationError) as exc:
            validate_account_payload({"name": "Ann Lee", "email": "a@b.co", "password": password})
        assert _fields(exc.value) == {"password"}

    def test_password_not_escaped(self):
        cleaned = validate_account_payload({"name": "Ann Lee", "email": "a@b.co", "password": "Ab&cdef1!"})
        assert cleaned["password"] == "Ab&cdef1!"

    def test_role_membership(self):
        with pytest.raises(ValidationError) as exc:
            validate_account_payload({
                "name": "Ann Lee", "email": "a@b.co", "password": "Abcdef1!", "role": "root",
            })
        assert _fields(exc.value) == {"role"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_account_payload({
                "name": "Ann Lee", "email": "a@b.co", "password": "Abcdef1!", "isAdmin": True,
            })
        assert _fields(exc.value) == {"isAdmin"}

    def test_partial_update_needs_a_field(self):
        with pytest.raises(ValidationError):
            validate_account_payload({}, partial=True)

    def test_partial_update(self):
        assert validate_account_payload({"name": "New Name"}, partial=True) == {"name": "New Name"}

    def test_input_not_mutated(self):
        payload = {"name": " Ann Lee ", "email": "ANN@x.com", "password": "Abcdef1!"}
        validate_account_payload(payload)
        assert payload["name"] == " Ann Lee "
        assert payload["email"] == "ANN@x.com"

    def test_non_object_payload(self):
        with pytest.raises(ValidationError):
            validate_account_payload(["name"])


class TestLoginPayload:

    def test_requires_both(self):
        with pytest.raises(ValidationError) as exc:
            validate_login_payload({"email": "a@b.co"})
        assert _fields(exc.value) == {"password"}

    def test_normalizes_email(self):
        assert validate_login_payload({"email": "A@B.co", "password": "x"})["email"] == "a@b.co"


class TestTransactionPayload:

    def test_scenario_payload(self):
        cleaned = validate_transaction_payload({
            "swiftCode": "BOFAUS3N", "amount": 100.00, "recipientName": "Bob",
        })
        assert cleaned["swift_code"] == "BOFAUS3N"
        assert cleaned["amount"] == Decimal("100.00")
        assert cleaned["recipient_name"] == "Bob"
        assert cleaned["payment_method"] == "bank_transfer"
        assert cleaned["description"] is None

    @pytest.mark.parametrize("swift", ["bofaus3n", "BOFA", "BOFAUS3NXXXX", "BOFA-US3N"])
    def test_bad_swift_codes(self, swift):
        with pytest.raises(ValidationError) as exc:
            validate_transaction_payload({"swiftCode": swift, "amount": "10"})
        assert _fields(exc.value) == {"swiftCode"}

    def test_all_violations_reported(self):
        with pytest.raises(ValidationError) as exc:
            validate_transaction_payload({"swiftCode": "x", "amount": "100.123", "paymentMethod": "cash"})
        assert _fields(exc.value) == {"swiftCode", "amount", "paymentMethod"}

    def test_missing_amount_reported_once(self):
        with pytest.raises(ValidationError) as exc:
            validate_transaction_payload({"swiftCode": "BOFAUS3N", "amount": "  "})
        assert [e["field"] for e in exc.value.errors] == ["amount"]

    def test_description_escaped(self):
        cleaned = validate_transaction_payload({
            "swiftCode": "BOFAUS3N", "amount": "5", "description": " Tom & Jerry <b> ",
        })
        assert cleaned["description"] == "Tom &amp; Jerry &lt;b&gt;"

    def test_description_length(self):
        with pytest.raises(ValidationError) as exc:
            validate_transaction_payload({"swiftCode": "BOFAUS3N", "amount": "5", "description": "x" * 501})
        assert _fields(exc.value) == {"description"}


class TestSmallBodies:

    def test_status_lowercased(self):
        assert validate_status_payload({"status": "Approved"}) == {"status": "approved"}

    def test_status_notes(self):
        cleaned = validate_status_payload({"status": "rejected", "adminNotes": "Bad SWIFT"})
        assert cleaned == {"status": "rejected", "notes": "Bad SWIFT"}

    def test_status_required(self):
        with pytest.raises(ValidationError):
            validate_status_payload({})

    def test_role_required(self):
        with pytest.raises(ValidationError):
            validate_role_payload({"role": ""})

    def test_role_lowercased(self):
        assert validate_role_payload({"role": "Employee"}) == {"role": "employee"}
