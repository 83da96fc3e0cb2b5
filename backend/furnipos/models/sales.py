from __future__ import annotations

from ..extensions import db
from furnipos.time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale document.

    LIFECYCLE:
    - OPEN: created with lines and frozen totals; no stock effect yet
    - COMPLETED: stock decremented from the sale's warehouse
    - CANCELLED: closed without stock effect
    - RETURNED: reserved for the return flow

    OPEN transitions to COMPLETED or CANCELLED exactly once. Totals are the
    sums of line totals at creation time and are never recomputed.

    workshop_status tracks workshop fulfillment independently of status.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_created", "status", "created_at"),
        db.Index("ix_sales_type_created", "sale_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable document number (e.g., "S-000123")
    document_number = db.Column(db.String(32), nullable=False, unique=True)

    sale_type = db.Column(db.String(16), nullable=False)  # PRODUCT, SERVICE
    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_uzs = db.Column(db.Integer, nullable=False, default=0)
    total_usd_cents = db.Column(db.Integer, nullable=False, default=0)
    exchange_rate = db.Column(db.Numeric(14, 2), nullable=False)

    goes_to_workshop = db.Column(db.Boolean, nullable=False, default=False)
    workshop_status = db.Column(db.String(16), nullable=True)  # PENDING, IN_PROGRESS, COMPLETED

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    cashier = db.relationship("User", foreign_keys=[cashier_id])
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "sale_type": self.sale_type,
            "status": self.status,
            "customer_id": self.customer_id,
            "warehouse_id": self.warehouse_id,
            "cashier_id": self.cashier_id,
            "total_uzs": self.total_uzs,
            "total_usd_cents": self.total_usd_cents,
            "exchange_rate": float(self.exchange_rate) if self.exchange_rate is not None else None,
            "goes_to_workshop": self.goes_to_workshop,
            "workshop_status": self.workshop_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "version_id": self.version_id,
        }


class SaleLine(db.Model):
    """
    Line item on a sale.

    References either a catalog product or a free-text service name.
    Line totals are computed per currency at creation and frozen.
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    service_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    price_uzs = db.Column(db.Integer, nullable=False)
    price_usd_cents = db.Column(db.Integer, nullable=False)
    total_uzs = db.Column(db.Integer, nullable=False)
    total_usd_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("lines", lazy=True, order_by="SaleLine.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "service_name": self.service_name,
            "quantity": self.quantity,
            "price_uzs": self.price_uzs,
            "price_usd_cents": self.price_usd_cents,
            "total_uzs": self.total_uzs,
            "total_usd_cents": self.total_usd_cents,
        }


class WorkshopTask(db.Model):
    """
    Physical fulfillment work (cutting, edging, assembly) spawned from a sale.

    LIFECYCLE: PENDING -> IN_PROGRESS -> COMPLETED (forward only).
    Completing the last task of a sale marks Sale.workshop_status COMPLETED;
    Sale.status is never touched.
    """
    __tablename__ = "workshop_tasks"
    __table_args__ = (
        db.Index("ix_workshop_tasks_assignee_status", "assigned_to_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)
    assigned_to_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    sale = db.relationship("Sale", backref=db.backref("workshop_tasks", lazy=True))
    assigned_to = db.relationship("User", foreign_keys=[assigned_to_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "description": self.description,
            "assigned_to_id": self.assigned_to_id,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "started_at": to_utc_z(self.started_at) if self.started_at else None,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }
