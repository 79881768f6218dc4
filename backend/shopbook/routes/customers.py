# Overview: Flask API routes for the customer directory; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..extensions import db
from ..services import customer_service
from ..decorators import require_auth, require_permission
from .errors import json_error


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("customers", "view")
def list_customers_route():
    """Active customers sorted by name. Query param: search."""
    try:
        customers = customer_service.list_customers(g.owner_id, request.args.get("search"))
        return jsonify({"customers": [c.to_dict() for c in customers], "count": len(customers)})
    except Exception as exc:
        return json_error(exc, "Failed to list customers")


@customers_bp.post("")
@require_auth
@require_permission("customers", "create")
def create_customer_route():
    """
    Register a customer, or return the existing one with the same name.

    Returns 201 for a new customer, 200 when it already existed.
    """
    try:
        data = request.get_json(silent=True) or {}
        customer, is_new = customer_service.get_or_create_customer(
            g.owner_id, data.get("customer_name"), data.get("customer_phone")
        )
        db.session.commit()
        return jsonify({"customer": customer.to_dict(), "created": is_new}), 201 if is_new else 200
    except Exception as exc:
        return json_error(exc, "Failed to create customer")


@customers_bp.patch("/<int:customer_id>")
@require_auth
@require_permission("customers", "edit")
def update_customer_route(customer_id: int):
    try:
        customer = customer_service.update_customer(
            g.owner_id, customer_id, request.get_json(silent=True) or {}
        )
        return jsonify({"customer": customer.to_dict()})
    except Exception as exc:
        return json_error(exc, "Failed to update customer")


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("customers", "delete")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(g.owner_id, customer_id)
        return jsonify({"message": "Customer deleted"})
    except Exception as exc:
        return json_error(exc, "Failed to delete customer")
