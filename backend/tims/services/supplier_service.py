# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

DESIGN:
- Inventory items optionally reference one supplier (InventoryItem.supplier_id)
- A supplier cannot be deleted while any item references it; reassign or
  clear the items first
- Orders belong to exactly one supplier and are deleted with it
"""

from sqlalchemy import func

from ..extensions import db
from ..models import Supplier, Order, InventoryItem
from ..validation import ConflictError


# Contact columns a PUT clears when the body leaves them out
SUPPLIER_CLEARABLE_FIELDS = ("contact_person", "email", "phone", "address")


class SupplierNotFoundError(Exception):
    """Raised when a supplier is not found."""
    pass


def _pending_orders_subquery():
    return (
        db.session.query(
            Order.supplier_id.label("supplier_id"),
            func.count(Order.id).label("pending_orders"),
        )
        .filter(Order.status == "pending")
        .group_by(Order.supplier_id)
        .subquery()
    )


def count_pending_orders(supplier_id: int) -> int:
    return db.session.query(Order).filter(
        Order.supplier_id == supplier_id,
        Order.status == "pending",
    ).count()


def list_suppliers(
    *,
    status: str | None = None,
    search: str | None = None,
) -> list[tuple[Supplier, int]]:
    """
    List suppliers alphabetically with their pending order counts.

    Args:
        status: Optional exact status filter
        search: Optional search term for name, contact person or email

    Returns:
        List of (Supplier, pending_orders) tuples
    """
    pending = _pending_orders_subquery()
    query = db.session.query(
        Supplier,
        func.coalesce(pending.c.pending_orders, 0),
    ).outerjoin(pending, pending.c.supplier_id == Supplier.id)

    if status:
        query = query.filter(Supplier.status == status)

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            db.or_(
                Supplier.name.ilike(search_term),
                Supplier.contact_person.ilike(search_term),
                Supplier.email.ilike(search_term),
            )
        )

    query = query.order_by(Supplier.name.asc(), Supplier.id.asc())
    return [(supplier, int(pending_count)) for supplier, pending_count in query.all()]


def get_supplier(supplier_id: int) -> Supplier:
    """
    Get a supplier by ID.

    Raises:
        SupplierNotFoundError: If supplier not found
    """
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise SupplierNotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def get_supplier_detail(supplier_id: int) -> dict:
    """Supplier with pending order count, its inventory items and its orders."""
    supplier = get_supplier(supplier_id)

    items = (
        db.session.query(InventoryItem)
        .filter(InventoryItem.supplier_id == supplier_id)
        .order_by(InventoryItem.name.asc())
        .all()
    )
    orders = (
        db.session.query(Order)
        .filter(Order.supplier_id == supplier_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )

    detail = supplier.to_dict()
    detail["pending_orders"] = count_pending_orders(supplier_id)
    detail["inventory_items"] = [
        {
            "id": item.id,
            "name": item.name,
            "category": item.category,
            "stock_level": item.stock_level,
            "reorder_point": item.reorder_point,
            "status": item.status,
        }
        for item in items
    ]
    detail["orders"] = [order.to_dict() for order in orders]
    return detail


def create_supplier(*, fields: dict) -> Supplier:
    supplier = Supplier(**fields)
    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(*, supplier_id: int, fields: dict) -> Supplier:
    """
    Replace a supplier's fields; contact fields missing from fields are cleared.

    Raises:
        SupplierNotFoundError: If supplier not found
    """
    supplier = get_supplier(supplier_id)
    fields = {**dict.fromkeys(SUPPLIER_CLEARABLE_FIELDS), **fields}
    for key, value in fields.items():
        setattr(supplier, key, value)
    db.session.commit()
    return supplier


def delete_supplier(supplier_id: int) -> None:
    """
    Delete a supplier and its orders.

    Raises:
        SupplierNotFoundError: If supplier not found
        ConflictError: If inventory items still reference the supplier
    """
    supplier = get_supplier(supplier_id)

    item_count = db.session.query(InventoryItem).filter(
        InventoryItem.supplier_id == supplier_id
    ).count()
    if item_count > 0:
        raise ConflictError(
            "Cannot delete supplier with associated inventory items. Update inventory items first."
        )

    db.session.delete(supplier)
    db.session.commit()
