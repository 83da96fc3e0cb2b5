from __future__ import annotations

from ..extensions import db
from furnipos.time_utils import to_utc_z


class StockItem(db.Model):
    """
    On-hand quantity of one product in one warehouse.

    Keyed by (product_id, warehouse_id). Rows are created zero-based on first
    reference and then adjusted in place with single UPDATE statements (see
    stock_service); never read-modify-write in Python.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_stock_items_product_warehouse"),
        db.Index("ix_stock_items_warehouse", "warehouse_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("stock_items", lazy=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("stock_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }


class Purchase(db.Model):
    """
    Stock intake document.

    Posting a purchase increments destination stock and, in the same
    transaction, records an Expense and an EXPENSE register operation.
    """
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(32), nullable=False, unique=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    total_uzs = db.Column(db.Integer, nullable=False, default=0)
    total_usd_cents = db.Column(db.Integer, nullable=False, default=0)
    exchange_rate = db.Column(db.Numeric(14, 2), nullable=False)

    cash_register = db.Column(db.String(16), nullable=False, default="SALES")
    payment_type = db.Column(db.String(16), nullable=False, default="CASH_UZS")
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier")

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "supplier_id": self.supplier_id,
            "warehouse_id": self.warehouse_id,
            "total_uzs": self.total_uzs,
            "total_usd_cents": self.total_usd_cents,
            "exchange_rate": float(self.exchange_rate) if self.exchange_rate is not None else None,
            "cash_register": self.cash_register,
            "payment_type": self.payment_type,
            "expense_id": self.expense_id,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_uzs = db.Column(db.Integer, nullable=False, default=0)
    price_usd_cents = db.Column(db.Integer, nullable=False, default=0)

    purchase = db.relationship("Purchase", backref=db.backref("lines", lazy=True, order_by="PurchaseLine.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price_uzs": self.price_uzs,
            "price_usd_cents": self.price_usd_cents,
        }


class Transfer(db.Model):
    """Completed warehouse-to-warehouse move of a single product."""
    __tablename__ = "transfers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    from_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    to_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from_warehouse_id": self.from_warehouse_id,
            "to_warehouse_id": self.to_warehouse_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class StockMovement(db.Model):
    """
    Append-only record of manual stock operations.

    MOVEMENT TYPES:
    - WRITE_OFF: goods removed (damage, loss, internal use)
    - RETURN: goods put back on stock
    - SET: absolute correction by the owner
    """
    __tablename__ = "stock_movements"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    movement_type = db.Column(db.String(16), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "movement_type": self.movement_type,
            "warehouse_id": self.warehouse_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "quantity_after": self.quantity_after,
            "reason": self.reason,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }


class InventoryCheck(db.Model):
    """
    Physical inventory count.

    LIFECYCLE:
    - DRAFT: expected vs actual snapshotted, live stock untouched
    - COMPLETED: live stock overwritten with actual counts (exactly once)
    """
    __tablename__ = "inventory_checks"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    applied_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "applied_by_user_id": self.applied_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class InventoryCheckLine(db.Model):
    __tablename__ = "inventory_check_lines"
    __table_args__ = (
        db.UniqueConstraint("check_id", "product_id", name="uq_inventory_check_lines_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    check_id = db.Column(db.Integer, db.ForeignKey("inventory_checks.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    expected_qty = db.Column(db.Integer, nullable=False)
    actual_qty = db.Column(db.Integer, nullable=False)
    difference = db.Column(db.Integer, nullable=False)  # actual - expected

    check = db.relationship(
        "InventoryCheck",
        backref=db.backref("lines", lazy=True, order_by="InventoryCheckLine.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "check_id": self.check_id,
            "product_id": self.product_id,
            "expected_qty": self.expected_qty,
            "actual_qty": self.actual_qty,
            "difference": self.difference,
        }
