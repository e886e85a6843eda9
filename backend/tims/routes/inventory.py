# backend/tims/routes/inventory.py
"""
Inventory management routes.

SECURITY: All routes require authentication.
- Reads are open to every role
- Create/update items require admin or manager
- Delete requires admin
- Recording transactions is open to admin, manager and staff
"""
from flask import Blueprint, request, jsonify, g

from ..models import InventoryItem, InventoryTransaction
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    enforce_rules_inventory_item,
    enforce_rules_inventory_transaction,
)
from ..decorators import require_auth, require_role
from ..services import inventory_service
from ..services.inventory_service import InventoryItemNotFoundError, InsufficientStockError


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

INVENTORY_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "category",
        "description",
        "serial_number",
        "location",
        "status",
        "stock_level",
        "reorder_point",
        "supplier_id",
    },
    required_on_create={"name", "category", "status", "stock_level", "reorder_point"},
)

INVENTORY_TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={"transaction_type", "quantity", "notes"},
    required_on_create={"transaction_type", "quantity"},
)


def _item_not_found():
    return jsonify({"error": "Inventory item not found"}), 404


def _validated_item_payload() -> dict:
    patch = validate_payload(
        model=InventoryItem,
        payload=request.get_json(silent=True),
        policy=INVENTORY_ITEM_POLICY,
        partial=False,
    )
    enforce_rules_inventory_item(patch)
    return patch


@inventory_bp.get("")
@require_auth
def list_inventory_route():
    """
    List inventory items.

    Query parameters:
    - category: exact category
    - status: exact status
    - search: substring of name, serial number or supplier name (case-insensitive)
    - low_stock: "true" to keep only items at or below their reorder point

    Returns:
        {count: int, items: InventoryItem[]}
    """
    low_stock = request.args.get("low_stock", "false").lower() == "true"

    items = inventory_service.list_items(
        category=request.args.get("category") or None,
        status=request.args.get("status") or None,
        search=request.args.get("search") or None,
        low_stock=low_stock,
    )

    return jsonify({
        "count": len(items),
        "items": [item.to_dict() for item in items],
    })


@inventory_bp.get("/stats/overview")
@require_auth
def inventory_stats_route():
    """Aggregate counts for the dashboard."""
    return jsonify(inventory_service.get_inventory_stats())


@inventory_bp.get("/<int:item_id>")
@require_auth
def get_inventory_item_route(item_id: int):
    try:
        item = inventory_service.get_item(item_id)
    except InventoryItemNotFoundError:
        return _item_not_found()
    return jsonify(item.to_dict())


@inventory_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_inventory_item_route():
    """
    Create an inventory item.

    Initial stock is logged as a purchase; an item created at or below its
    reorder point raises a low-stock notification.
    """
    try:
        patch = _validated_item_payload()
        item = inventory_service.create_item(fields=patch, user_id=g.current_user.id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({
        "message": "Inventory item created successfully",
        "item": item.to_dict(),
    }), 201


@inventory_bp.put("/<int:item_id>")
@require_auth
@require_role("admin", "manager")
def update_inventory_item_route(item_id: int):
    """Replace an inventory item (full payload, same rules as create)."""
    try:
        patch = _validated_item_payload()
        item = inventory_service.update_item(item_id=item_id, fields=patch, user_id=g.current_user.id)
    except InventoryItemNotFoundError:
        return _item_not_found()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({
        "message": "Inventory item updated successfully",
        "item": item.to_dict(),
    })


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_role("admin")
def delete_inventory_item_route(item_id: int):
    try:
        inventory_service.delete_item(item_id)
    except InventoryItemNotFoundError:
        return _item_not_found()
    return jsonify({"message": "Inventory item deleted successfully"})


@inventory_bp.get("/<int:item_id>/transactions")
@require_auth
def list_inventory_transactions_route(item_id: int):
    """
    Transaction log for an item, newest first.

    Returns:
        {count: int, transactions: InventoryTransaction[]}
    """
    try:
        transactions = inventory_service.list_item_transactions(item_id)
    except InventoryItemNotFoundError:
        return _item_not_found()

    return jsonify({
        "count": len(transactions),
        "transactions": [tx.to_dict() for tx in transactions],
    })


@inventory_bp.post("/<int:item_id>/transactions")
@require_auth
@require_role("admin", "manager", "staff")
def record_inventory_transaction_route(item_id: int):
    """
    Record a stock movement.

    Request body:
    {
        "transaction_type": "purchase" | "sale" | "return" | "adjustment",
        "quantity": 5,      // positive; signed delta for adjustment
        "notes": "..."      // optional
    }

    Returns 201:
        {message, transaction, new_stock_level}
    """
    try:
        patch = validate_payload(
            model=InventoryTransaction,
            payload=request.get_json(silent=True),
            policy=INVENTORY_TRANSACTION_POLICY,
            partial=False,
        )
        enforce_rules_inventory_transaction(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        tx, new_stock_level = inventory_service.record_transaction(
            item_id=item_id,
            transaction_type=patch["transaction_type"],
            quantity=patch["quantity"],
            notes=patch.get("notes"),
            user_id=g.current_user.id,
        )
    except InventoryItemNotFoundError:
        return _item_not_found()
    except InsufficientStockError as e:
        return jsonify({
            "error": str(e),
            "available": e.available,
            "requested": e.requested,
        }), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "message": "Transaction recorded successfully",
        "transaction": tx.to_dict(),
        "new_stock_level": new_stock_level,
    }), 201
