# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/tims/services/inventory_service.py

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InventoryItem, InventoryTransaction, Supplier
from ..validation import ValidationError, ConflictError, MAX_QUANTITY
from tims.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .notification_service import add_low_stock_alert, crossed_reorder_point
"""
TIMS Inventory Invariants (authoritative)

Stock model:
- InventoryItem.stock_level is the current on-hand count; it is never negative.
- Every change to stock_level appends exactly one InventoryTransaction with
  previous_stock / new_stock and the quantity as a magnitude.

Transaction types:
- purchase, return: new = current + quantity
- sale:             new = current - quantity; rejected if quantity > current
- adjustment:       new = max(0, current + delta); delta is signed

Low-stock alerts (edge-triggered):
- A low_stock notification is written only when stock moves from above the
  reorder point to at-or-below it. Staying below does not re-notify.
- A newly created item at or below its reorder point notifies once.

Atomicity:
- Item row is read under lock_for_update; InventoryItem.version_id guards
  against lost updates where row locks are not honored.
- Transaction row, stock update and notification commit together, and the
  whole unit is re-run by run_with_retry on lock/version conflicts.
"""

# Notes written on transactions recorded by item create/update
INITIAL_STOCK_NOTE = "Initial inventory"
ITEM_EDIT_NOTE = "Stock update via item edit"

# Optional columns a PUT clears when the body leaves them out
ITEM_CLEARABLE_FIELDS = ("description", "serial_number", "location", "supplier_id")


class InventoryItemNotFoundError(Exception):
    """Raised when an inventory item is not found."""
    pass


class InsufficientStockError(ValueError):
    """Raised when a sale asks for more units than are on hand."""

    def __init__(self, available: int, requested: int):
        super().__init__("Insufficient stock for this transaction")
        self.available = available
        self.requested = requested


def compute_new_stock(transaction_type: str, current: int, quantity: int) -> int:
    """
    Stock level after applying a transaction to current.

    Raises InsufficientStockError for a sale larger than current, and
    ValidationError when the result would pass MAX_QUANTITY.
    """
    if transaction_type in ("purchase", "return"):
        return _within_cap(current + quantity)
    if transaction_type == "sale":
        if quantity > current:
            raise InsufficientStockError(available=current, requested=quantity)
        return current - quantity
    if transaction_type == "adjustment":
        return _within_cap(max(0, current + quantity))
    raise ValidationError(f"Invalid transaction type: {transaction_type}")


def _within_cap(new_stock: int) -> int:
    if new_stock > MAX_QUANTITY:
        raise ValidationError(f"stock_level cannot exceed {MAX_QUANTITY}")
    return new_stock


def _get_item(item_id: int, *, lock: bool = False) -> InventoryItem:
    query = db.session.query(InventoryItem).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise InventoryItemNotFoundError(f"Inventory item {item_id} not found")
    return item


def _append_transaction(
    *,
    item: InventoryItem,
    transaction_type: str,
    quantity: int,
    previous_stock: int,
    new_stock: int,
    user_id: int | None,
    notes: str | None,
) -> InventoryTransaction:
    tx = InventoryTransaction(
        inventory_id=item.id,
        transaction_type=transaction_type,
        quantity=abs(quantity),
        previous_stock=previous_stock,
        new_stock=new_stock,
        user_id=user_id,
        notes=notes,
        transaction_date=utcnow(),
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def _ensure_supplier_exists(supplier_id: int | None) -> None:
    if supplier_id is None:
        return
    if db.session.get(Supplier, supplier_id) is None:
        raise ValidationError(f"Supplier {supplier_id} does not exist")


def _ensure_serial_available(serial_number: str | None, *, exclude_item_id: int | None = None) -> None:
    if not serial_number:
        return
    query = db.session.query(InventoryItem.id).filter(InventoryItem.serial_number == serial_number)
    if exclude_item_id is not None:
        query = query.filter(InventoryItem.id != exclude_item_id)
    if query.first() is not None:
        raise ConflictError("Serial number already exists")


def _commit_item_change() -> None:
    """Commit, turning a unique-index race on serial_number into ConflictError."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Serial number already exists") from exc


def record_transaction(
    *,
    item_id: int,
    transaction_type: str,
    quantity: int,
    notes: str | None = None,
    user_id: int | None = None,
) -> tuple[InventoryTransaction, int]:
    """
    Apply a stock-affecting event to one item.

    Returns (transaction, new_stock_level).

    Raises:
        InventoryItemNotFoundError: item_id does not exist
        InsufficientStockError: sale quantity exceeds stock (nothing written)
        ValidationError: unknown transaction_type, or stock would pass MAX_QUANTITY
    """
    def _op():
        item = _get_item(item_id, lock=True)

        current = item.stock_level
        new_stock = compute_new_stock(transaction_type, current, quantity)

        tx = _append_transaction(
            item=item,
            transaction_type=transaction_type,
            quantity=quantity,
            previous_stock=current,
            new_stock=new_stock,
            user_id=user_id,
            notes=notes,
        )

        item.stock_level = new_stock
        item.updated_at = utcnow()

        if crossed_reorder_point(current, new_stock, item.reorder_point):
            add_low_stock_alert(item, new_stock)

        db.session.commit()
        return tx, new_stock

    return run_with_retry(_op, label=f"{transaction_type} on item {item_id}")


def create_item(*, fields: dict, user_id: int | None = None) -> InventoryItem:
    """
    Create an inventory item from validated fields.

    Initial stock is recorded as a purchase transaction from 0, and an item
    created at or below its reorder point raises a low-stock alert.
    """
    _ensure_serial_available(fields.get("serial_number"))
    _ensure_supplier_exists(fields.get("supplier_id"))

    item = InventoryItem(**fields)
    item.stock_level = fields.get("stock_level") or 0
    item.reorder_point = fields.get("reorder_point") or 0
    db.session.add(item)
    db.session.flush()

    if item.stock_level > 0:
        _append_transaction(
            item=item,
            transaction_type="purchase",
            quantity=item.stock_level,
            previous_stock=0,
            new_stock=item.stock_level,
            user_id=user_id,
            notes=INITIAL_STOCK_NOTE,
        )

    if crossed_reorder_point(None, item.stock_level, item.reorder_point):
        add_low_stock_alert(item, item.stock_level)

    _commit_item_change()
    return item


def update_item(*, item_id: int, fields: dict, user_id: int | None = None) -> InventoryItem:
    """
    Replace an item's fields.

    Optional fields missing from fields are cleared. A stock_level change is
    logged as a purchase (increase) or adjustment (decrease) and checked
    against the new reorder point.
    """
    fields = {**dict.fromkeys(ITEM_CLEARABLE_FIELDS), **fields}

    def _op():
        item = _get_item(item_id, lock=True)

        if fields["serial_number"] != item.serial_number:
            _ensure_serial_available(fields["serial_number"], exclude_item_id=item.id)
        _ensure_supplier_exists(fields["supplier_id"])

        previous_stock = item.stock_level

        for key, value in fields.items():
            setattr(item, key, value)
        item.updated_at = utcnow()

        new_stock = item.stock_level
        if new_stock != previous_stock:
            _append_transaction(
                item=item,
                transaction_type="purchase" if new_stock > previous_stock else "adjustment",
                quantity=new_stock - previous_stock,
                previous_stock=previous_stock,
                new_stock=new_stock,
                user_id=user_id,
                notes=ITEM_EDIT_NOTE,
            )

            if crossed_reorder_point(previous_stock, new_stock, item.reorder_point):
                add_low_stock_alert(item, new_stock)

        _commit_item_change()
        return item

    return run_with_retry(_op, label=f"edit of item {item_id}")


def delete_item(item_id: int) -> None:
    """Delete an item together with its transaction log."""
    def _op():
        item = _get_item(item_id, lock=True)
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op, label=f"delete of item {item_id}")


def get_item(item_id: int) -> InventoryItem:
    return _get_item(item_id)


def list_items(
    *,
    category: str | None = None,
    status: str | None = None,
    search: str | None = None,
    low_stock: bool = False,
) -> list[InventoryItem]:
    """
    Filtered inventory listing, most recently updated first.

    search matches item name, serial number and supplier name (case-insensitive).
    """
    query = db.session.query(InventoryItem).outerjoin(
        Supplier, InventoryItem.supplier_id == Supplier.id
    )

    if category:
        query = query.filter(InventoryItem.category == category)

    if status:
        query = query.filter(InventoryItem.status == status)

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            db.or_(
                InventoryItem.name.ilike(search_term),
                InventoryItem.serial_number.ilike(search_term),
                Supplier.name.ilike(search_term),
            )
        )

    if low_stock:
        query = query.filter(InventoryItem.stock_level <= InventoryItem.reorder_point)

    query = query.order_by(InventoryItem.updated_at.desc(), InventoryItem.id.desc())
    return query.all()


def list_item_transactions(item_id: int, limit: int | None = None) -> list[InventoryTransaction]:
    """Transaction log for one item, newest first."""
    _get_item(item_id)

    query = db.session.query(InventoryTransaction).filter_by(
        inventory_id=item_id,
    ).order_by(
        InventoryTransaction.transaction_date.desc(),
        InventoryTransaction.id.desc(),
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def get_inventory_stats() -> dict:
    total_items = db.session.query(func.count(InventoryItem.id)).scalar()
    low_stock_count = db.session.query(func.count(InventoryItem.id)).filter(
        InventoryItem.stock_level <= InventoryItem.reorder_point
    ).scalar()
    total_stock = db.session.query(
        func.coalesce(func.sum(InventoryItem.stock_level), 0)
    ).scalar()

    count_col = func.count(InventoryItem.id).label("count")
    rows = (
        db.session.query(InventoryItem.category, count_col)
        .group_by(InventoryItem.category)
        .order_by(count_col.desc(), InventoryItem.category.asc())
        .all()
    )

    return {
        "total_items": int(total_items or 0),
        "low_stock_count": int(low_stock_count or 0),
        "total_stock": int(total_stock or 0),
        "by_category": [
            {"category": row.category, "count": int(row.count)}
            for row in rows
        ],
    }
