from __future__ import annotations

from ..extensions import db
from tims.time_utils import to_utc_z, utcnow


ITEM_STATUSES = ("available", "in_use", "maintenance", "retired")
TRANSACTION_TYPES = ("purchase", "sale", "return", "adjustment")


class InventoryItem(db.Model):
    """
    Equipment tracked in inventory.

    stock_level is a mutable counter, changed only through
    inventory_service (create/update/record_transaction) so that every
    change has a matching InventoryTransaction row.

    CONCURRENCY:
    version_id is an optimistic lock. A writer that read a stale stock_level
    fails its UPDATE with StaleDataError and is retried by run_with_retry.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("stock_level >= 0", name="ck_inventory_items_stock_nonneg"),
        db.CheckConstraint("reorder_point >= 0", name="ck_inventory_items_reorder_nonneg"),
        db.Index("ix_inventory_items_category", "category"),
        db.Index("ix_inventory_items_status", "status"),
        db.Index("ix_inventory_items_updated", "updated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    # Unique when present; NULLs never collide
    serial_number = db.Column(db.String(100), nullable=True, unique=True)
    location = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="available")

    stock_level = db.Column(db.Integer, nullable=False, default=0)
    reorder_point = db.Column(db.Integer, nullable=False, default=0)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    supplier = db.relationship("Supplier", backref=db.backref("inventory_items", lazy=True))
    transactions = db.relationship(
        "InventoryTransaction",
        backref="item",
        lazy=True,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} stock={self.stock_level}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_level <= self.reorder_point

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "serial_number": self.serial_number,
            "location": self.location,
            "status": self.status,
            "stock_level": self.stock_level,
            "reorder_point": self.reorder_point,
            "is_low_stock": self.is_low_stock,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only stock movement log.

    quantity is always a magnitude; the direction is in previous_stock/new_stock.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_invtx_item_date", "inventory_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    inventory_id = db.Column(
        db.Integer,
        db.ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    transaction_type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "transaction_type": self.transaction_type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "user_id": self.user_id,
            "user_name": self.user.username if self.user else None,
            "notes": self.notes,
            "transaction_date": to_utc_z(self.transaction_date),
        }
