# Overview: Service-layer operations for the catalog; encapsulates business logic and database work.

from __future__ import annotations

from ..errors import ConflictError, ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Category, Customer, Product, Supplier, Warehouse
from ..permissions import Role
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    non_negative_int,
    MAX_AMOUNT_UZS,
    MAX_AMOUNT_USD_CENTS,
)
from .concurrency import run_with_retry
from .document_service import next_document_number


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "description", "unit", "category_id",
        "sell_price_uzs", "sell_price_usd_cents", "min_price_uzs",
        "cost_price_uzs", "cost_price_usd_cents",
        "min_stock_alert", "is_locked", "is_active",
    },
    required_on_create={"name"},
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "parent_id", "is_active"},
    required_on_create={"name"},
)

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "is_active"},
    required_on_create={"name"},
)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "notes", "is_active"},
    required_on_create={"name"},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "phone", "notes"},
    required_on_create={"full_name"},
)


# =============================================================================
# Products
# =============================================================================

def list_products(search: str | None = None, category_id: int | None = None, include_inactive: bool = False):
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    return query.order_by(Product.name).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def _check_category(category_id):
    if category_id is not None and not db.session.get(Category, category_id):
        raise NotFoundError("Category not found")


def create_product(payload: dict) -> Product:
    """SKU is auto-numbered (000001, 000002, ...) when absent."""
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    def _op():
        _check_category(patch.get("category_id"))
        if not patch.get("sku"):
            patch["sku"] = next_document_number("SKU")
        if db.session.query(Product).filter_by(sku=patch["sku"]).first():
            raise ConflictError("SKU already exists")
        product = Product(**patch)
        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(actor, product_id: int, payload: dict) -> Product:
    """Locked products can only be changed by the Owner (unlocking included)."""
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        product = get_product(product_id)
        if product.is_locked and actor.role != Role.OWNER:
            raise ForbiddenError("Product is locked")
        if "is_locked" in patch and actor.role != Role.OWNER:
            raise ForbiddenError("Only the Owner can lock or unlock products")
        if "category_id" in patch:
            _check_category(patch["category_id"])
        if patch.get("sku") and patch["sku"] != product.sku:
            if db.session.query(Product).filter_by(sku=patch["sku"]).first():
                raise ConflictError("SKU already exists")
        for key, value in patch.items():
            setattr(product, key, value)
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(actor, product_id: int) -> Product:
    """Soft delete."""
    def _op():
        product = get_product(product_id)
        if product.is_locked and actor.role != Role.OWNER:
            raise ForbiddenError("Product is locked")
        product.is_active = False
        db.session.commit()
        return product

    return run_with_retry(_op)


def revalue_product(product_id: int, data: dict) -> Product:
    """Set new cost prices."""
    cost_uzs = non_negative_int(data.get("cost_price_uzs"), "cost_price_uzs", MAX_AMOUNT_UZS)
    cost_usd_cents = non_negative_int(
        data.get("cost_price_usd_cents", 0), "cost_price_usd_cents", MAX_AMOUNT_USD_CENTS
    )

    def _op():
        product = get_product(product_id)
        product.cost_price_uzs = cost_uzs
        product.cost_price_usd_cents = cost_usd_cents
        db.session.commit()
        return product

    return run_with_retry(_op)


# =============================================================================
# Categories, warehouses, suppliers
# =============================================================================

def list_categories() -> list[Category]:
    return db.session.query(Category).filter(Category.is_active.is_(True)).order_by(Category.name).all()


def create_category(payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    if db.session.query(Category).filter_by(name=patch["name"]).first():
        raise ConflictError("Category already exists")
    if patch.get("parent_id") is not None:
        _check_category(patch["parent_id"])
    category = Category(**patch)
    db.session.add(category)
    db.session.commit()
    return category


def list_warehouses(include_inactive: bool = False) -> list[Warehouse]:
    query = db.session.query(Warehouse)
    if not include_inactive:
        query = query.filter(Warehouse.is_active.is_(True))
    return query.order_by(Warehouse.id).all()


def create_warehouse(payload: dict) -> Warehouse:
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
    if db.session.query(Warehouse).filter_by(name=patch["name"]).first():
        raise ConflictError("Warehouse already exists")
    warehouse = Warehouse(**patch)
    db.session.add(warehouse)
    db.session.commit()
    return warehouse


def list_suppliers() -> list[Supplier]:
    return db.session.query(Supplier).filter(Supplier.is_active.is_(True)).order_by(Supplier.name).all()


def create_supplier(payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    supplier = Supplier(**patch)
    db.session.add(supplier)
    db.session.commit()
    return supplier


# =============================================================================
# Customers
# =============================================================================

def list_customers(search: str | None = None, page: int = 1, limit: int = 50) -> dict:
    query = db.session.query(Customer).filter(Customer.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Customer.full_name.ilike(pattern), Customer.phone.ilike(pattern)))

    page = max(1, page or 1)
    limit = max(1, min(limit or 50, 200))
    total = query.count()
    customers = query.order_by(Customer.full_name).offset((page - 1) * limit).limit(limit).all()
    return {
        "customers": [customer.to_dict() for customer in customers],
        "total": total,
        "page": page,
        "limit": limit,
    }


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer or not customer.is_active:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    customer = Customer(**patch)
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer_id: int, payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    customer = get_customer(customer_id)
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.commit()
    return customer


def delete_customer(customer_id: int) -> Customer:
    """Soft delete."""
    customer = get_customer(customer_id)
    customer.is_active = False
    db.session.commit()
    return customer
