# Overview: Flask API routes for products and categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError
from ..extensions import db
from ..permissions import Permissions
from ..services import catalog_service
from ..validation import optional_int


products_bp = Blueprint("products", __name__, url_prefix="/api")


def _service_error(e: ServiceError):
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


@products_bp.get("/products")
@require_auth
@require_permission(Permissions.PRODUCT_READ)
def list_products_route():
    try:
        products = catalog_service.list_products(
            search=request.args.get("search"),
            category_id=optional_int(request.args.get("category_id"), "category_id"),
            include_inactive=request.args.get("include_inactive") == "true",
        )
        return jsonify({"products": [product.to_dict() for product in products]}), 200
    except ServiceError as e:
        return _service_error(e)


@products_bp.get("/products/<int:product_id>")
@require_auth
@require_permission(Permissions.PRODUCT_READ)
def get_product_route(product_id: int):
    try:
        return jsonify({"product": catalog_service.get_product(product_id).to_dict()}), 200
    except ServiceError as e:
        return _service_error(e)


@products_bp.post("/products")
@require_auth
@require_permission(Permissions.PRODUCT_CREATE)
def create_product_route():
    try:
        data = request.get_json(silent=True) or {}
        product = catalog_service.create_product(data)
        return jsonify({"product": product.to_dict()}), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/products/<int:product_id>")
@require_auth
@require_permission(Permissions.PRODUCT_UPDATE)
def update_product_route(product_id: int):
    try:
        data = request.get_json(silent=True) or {}
        product = catalog_service.update_product(g.current_user, product_id, data)
        return jsonify({"product": product.to_dict()}), 200

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/products/<int:product_id>")
@require_auth
@require_permission(Permissions.PRODUCT_DELETE)
def delete_product_route(product_id: int):
    try:
        product = catalog_service.delete_product(g.current_user, product_id)
        return jsonify({"product": product.to_dict()}), 200
    except ServiceError as e:
        return _service_error(e)


@products_bp.post("/products/<int:product_id>/revalue")
@require_auth
@require_permission(Permissions.WAREHOUSE_REVALUE)
def revalue_product_route(product_id: int):
    try:
        data = request.get_json(silent=True) or {}
        product = catalog_service.revalue_product(product_id, data)
        return jsonify({"product": product.to_dict()}), 200

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to revalue product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/categories")
@require_auth
def list_categories_route():
    categories = catalog_service.list_categories()
    return jsonify({"categories": [category.to_dict() for category in categories]}), 200


@products_bp.post("/categories")
@require_auth
@require_permission(Permissions.CATEGORY_MANAGE)
def create_category_route():
    try:
        data = request.get_json(silent=True) or {}
        category = catalog_service.create_category(data)
        return jsonify({"category": category.to_dict()}), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500
