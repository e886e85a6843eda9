"""
Payload validation: column-driven coercion, allowlists and business rules.
"""

import pytest

from tims.models import InventoryItem, Order
from tims.validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_rules_inventory_item,
    enforce_rules_inventory_transaction,
    enforce_rules_order,
    enforce_rules_user,
    MAX_AMOUNT_CENTS,
)


ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "status", "stock_level", "reorder_point", "serial_number"},
    required_on_create={"name", "category"},
)


class TestValidatePayload:

    def test_strips_strings_and_coerces_integers(self):
        patch = validate_payload(
            model=InventoryItem,
            payload={"name": "  Router  ", "category": "Routers", "stock_level": "12"},
            policy=ITEM_POLICY,
            partial=False,
        )
        assert patch == {"name": "Router", "category": "Routers", "stock_level": 12}

    def test_blank_optional_string_becomes_none(self):
        patch = validate_payload(
            model=InventoryItem,
            payload={"serial_number": "   "},
            policy=ITEM_POLICY,
            partial=True,
        )
        assert patch == {"serial_number": None}

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({"name": "x"}, "Missing required fields: category"),
            ({"name": "x", "category": "y", "id": 3}, "Field not allowed: id"),
            ({"name": "", "category": "y"}, "name cannot be blank"),
            ({"name": None, "category": "y"}, "name cannot be null"),
            ({"name": "x", "category": "y", "stock_level": "1e3"}, "scientific notation"),
            ({"name": "x", "category": "y", "stock_level": "2.5"}, "no decimals"),
            ({"name": "x", "category": "y", "stock_level": True}, "must be an integer"),
            ({"name": "x" * 300, "category": "y"}, "exceeds max length 255"),
        ],
    )
    def test_rejections(self, payload, message):
        with pytest.raises(ValidationError, match=message):
            validate_payload(model=InventoryItem, payload=payload, policy=ITEM_POLICY, partial=False)

    def test_non_object_payload(self):
        with pytest.raises(ValidationError, match="Invalid JSON payload"):
            validate_payload(model=InventoryItem, payload=[1, 2], policy=ITEM_POLICY, partial=False)

    def test_datetime_parsing(self):
        policy = ModelValidationPolicy(writable_fields={"expected_delivery_date"}, required_on_create=set())
        patch = validate_payload(
            model=Order,
            payload={"expected_delivery_date": "2026-11-01T09:30:00+02:00"},
            policy=policy,
            partial=True,
        )
        assert patch["expected_delivery_date"].isoformat() == "2026-11-01T07:30:00"


class TestBusinessRules:

    def test_item_rules(self):
        enforce_rules_inventory_item({"status": "in_use", "stock_level": 0, "reorder_point": 0})
        with pytest.raises(ValidationError):
            enforce_rules_inventory_item({"stock_level": -1})

    @pytest.mark.parametrize(
        "patch",
        [
            {"transaction_type": "sale", "quantity": 1},
            {"transaction_type": "adjustment", "quantity": -7},
            {"transaction_type": "adjustment", "quantity": 7},
        ],
    )
    def test_transaction_rules_accept(self, patch):
        enforce_rules_inventory_transaction(patch)

    @pytest.mark.parametrize(
        "patch",
        [
            {"transaction_type": "sale", "quantity": 0},
            {"transaction_type": "return", "quantity": -1},
            {"transaction_type": "adjustment", "quantity": 0},
            {"transaction_type": "loan", "quantity": 1},
            {"transaction_type": "purchase", "quantity": None},
        ],
    )
    def test_transaction_rules_reject(self, patch):
        with pytest.raises(ValidationError):
            enforce_rules_inventory_transaction(patch)

    def test_order_amount_bounds(self):
        enforce_rules_order({"total_amount_cents": MAX_AMOUNT_CENTS})
        with pytest.raises(ValidationError):
            enforce_rules_order({"total_amount_cents": MAX_AMOUNT_CENTS + 1})

    def test_user_rules(self):
        enforce_rules_user({"role": "manager", "email": "m@tims.local"})
        with pytest.raises(ValidationError):
            enforce_rules_user({"role": "owner"})
        with pytest.raises(ValidationError):
            enforce_rules_user({"email": "no-at-sign"})
