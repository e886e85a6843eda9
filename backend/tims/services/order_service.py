# Overview: Service-layer operations for supplier orders.

from ..extensions import db
from ..models import Order
from .notification_service import add_notification
from .supplier_service import get_supplier


class OrderNotFoundError(Exception):
    """Raised when an order is not found."""
    pass


def create_order(*, supplier_id: int, fields: dict, user_id: int | None = None) -> Order:
    """
    Place a pending order with a supplier and broadcast an order_update notification.

    Raises:
        SupplierNotFoundError: If supplier not found
    """
    supplier = get_supplier(supplier_id)

    order = Order(
        supplier_id=supplier.id,
        status="pending",
        user_id=user_id,
        **fields,
    )
    db.session.add(order)
    db.session.flush()

    add_notification(
        title="New Order Created",
        message=f"New order #{order.id} created for {supplier.name}",
        type="order_update",
    )

    db.session.commit()
    return order


def list_supplier_orders(supplier_id: int) -> list[Order]:
    get_supplier(supplier_id)
    return (
        db.session.query(Order)
        .filter(Order.supplier_id == supplier_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def update_order_status(*, order_id: int, status: str, notes: str | None = None) -> Order:
    """
    Move an order to a new status; notes are replaced only when provided.

    Every status update broadcasts an order_update notification.
    """
    order = get_order(order_id)

    order.status = status
    if notes is not None:
        order.notes = notes

    add_notification(
        title="Order Status Updated",
        message=f"Order #{order.id} from {order.supplier.name} is now {status}",
        type="order_update",
    )

    db.session.commit()
    return order
