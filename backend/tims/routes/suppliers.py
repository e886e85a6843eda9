# Overview: Flask API routes for supplier and order operations; parses input and returns JSON responses.

"""
Supplier Routes

SECURITY: All routes require authentication.
- View operations are open to every role
- Create/update suppliers and orders require admin or manager
- Delete requires admin
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_role
from ..models import Supplier, Order
from ..services import supplier_service, order_service
from ..services.supplier_service import SupplierNotFoundError
from ..services.order_service import OrderNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    enforce_rules_supplier,
    enforce_rules_order,
    enforce_rules_order_status,
)


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "email", "phone", "address", "status"},
    required_on_create={"name", "status"},
)

ORDER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"expected_delivery_date", "total_amount_cents", "notes"},
    required_on_create=set(),
)

ORDER_STATUS_POLICY = ModelValidationPolicy(
    writable_fields={"status", "notes"},
    required_on_create={"status"},
)


def _supplier_not_found():
    return jsonify({"error": "Supplier not found"}), 404


def _validated_supplier_payload() -> dict:
    patch = validate_payload(
        model=Supplier,
        payload=request.get_json(silent=True),
        policy=SUPPLIER_POLICY,
        partial=False,
    )
    enforce_rules_supplier(patch)
    return patch


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    """
    List suppliers alphabetically.

    Query parameters:
    - status: exact status
    - search: substring of name, contact person or email (case-insensitive)

    Returns:
        {count: int, suppliers: Supplier[]} (each with pending_orders)
    """
    rows = supplier_service.list_suppliers(
        status=request.args.get("status") or None,
        search=request.args.get("search") or None,
    )

    suppliers = []
    for supplier, pending_orders in rows:
        data = supplier.to_dict()
        data["pending_orders"] = pending_orders
        suppliers.append(data)

    return jsonify({
        "count": len(suppliers),
        "suppliers": suppliers,
    })


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    """
    Get a supplier with its inventory items and orders.
    """
    try:
        return jsonify(supplier_service.get_supplier_detail(supplier_id))
    except SupplierNotFoundError:
        return _supplier_not_found()


@suppliers_bp.post("")
@require_auth
@require_role("admin", "manager")
def create_supplier_route():
    """
    Create a new supplier.

    Request body:
    {
        "name": "Supplier Name",     // required
        "status": "active",          // required: active | inactive | pending
        "contact_person": "...",     // optional
        "email": "...",              // optional, must be a valid address
        "phone": "...",              // optional
        "address": "..."             // optional
    }
    """
    try:
        patch = _validated_supplier_payload()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    supplier = supplier_service.create_supplier(fields=patch)
    return jsonify({
        "message": "Supplier created successfully",
        "supplier": supplier.to_dict(),
    }), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_role("admin", "manager")
def update_supplier_route(supplier_id: int):
    """Replace a supplier (full payload, same rules as create)."""
    try:
        patch = _validated_supplier_payload()
        supplier = supplier_service.update_supplier(supplier_id=supplier_id, fields=patch)
    except SupplierNotFoundError:
        return _supplier_not_found()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "message": "Supplier updated successfully",
        "supplier": supplier.to_dict(),
    })


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_role("admin")
def delete_supplier_route(supplier_id: int):
    """
    Delete a supplier and its orders.

    Returns 409 while inventory items still reference the supplier.
    """
    try:
        supplier_service.delete_supplier(supplier_id)
    except SupplierNotFoundError:
        return _supplier_not_found()
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"message": "Supplier deleted successfully"})


@suppliers_bp.post("/<int:supplier_id>/orders")
@require_auth
@require_role("admin", "manager")
def create_order_route(supplier_id: int):
    """
    Place an order with a supplier.

    Request body (all optional):
    {
        "expected_delivery_date": "2026-11-01T00:00:00Z",
        "total_amount_cents": 125000,
        "notes": "..."
    }
    """
    try:
        patch = validate_payload(
            model=Order,
            payload=request.get_json(silent=True),
            policy=ORDER_CREATE_POLICY,
            partial=False,
        )
        enforce_rules_order(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        order = order_service.create_order(
            supplier_id=supplier_id,
            fields=patch,
            user_id=g.current_user.id,
        )
    except SupplierNotFoundError:
        return _supplier_not_found()

    return jsonify({
        "message": "Order created successfully",
        "order": order.to_dict(),
    }), 201


@suppliers_bp.get("/<int:supplier_id>/orders")
@require_auth
def list_orders_route(supplier_id: int):
    try:
        orders = order_service.list_supplier_orders(supplier_id)
    except SupplierNotFoundError:
        return _supplier_not_found()

    return jsonify({
        "count": len(orders),
        "orders": [order.to_dict() for order in orders],
    })


@suppliers_bp.put("/orders/<int:order_id>")
@require_auth
@require_role("admin", "manager")
def update_order_status_route(order_id: int):
    """
    Update an order's status.

    Request body:
    {
        "status": "pending" | "shipped" | "delivered" | "cancelled",
        "notes": "..."   // optional; existing notes kept when omitted
    }
    """
    try:
        patch = validate_payload(
            model=Order,
            payload=request.get_json(silent=True),
            policy=ORDER_STATUS_POLICY,
            partial=False,
        )
        enforce_rules_order_status(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        order = order_service.update_order_status(
            order_id=order_id,
            status=patch["status"],
            notes=patch.get("notes"),
        )
    except OrderNotFoundError:
        return jsonify({"error": "Order not found"}), 404

    return jsonify({
        "message": "Order updated successfully",
        "order": order.to_dict(),
    })
