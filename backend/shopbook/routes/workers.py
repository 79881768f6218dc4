# Overview: Flask API routes for worker management; admin only.

"""
Worker Management API Routes

An admin creates workers under their own account and decides, per
feature, which of view/create/edit/delete each worker may do. Workers
can never reach these endpoints, whatever they are granted.
"""

from flask import Blueprint, request, jsonify, g

from ..services import worker_service
from ..services import permission_service
from ..decorators import require_auth, require_admin
from .errors import json_error


workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


def _worker_dict(worker) -> dict:
    return {**worker.to_dict(), "permissions": permission_service.permission_matrix(worker.id)}


@workers_bp.get("")
@require_auth
@require_admin
def list_workers_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    workers = worker_service.list_workers(g.current_user.id, include_inactive=include_inactive)
    return jsonify({"workers": [_worker_dict(w) for w in workers], "count": len(workers)})


@workers_bp.post("")
@require_auth
@require_admin
def create_worker_route():
    """
    Create a worker.

    Request body:
    {
        "email": "worker@shop.pk",
        "password": "...",
        "full_name": "Bilal",
        "phone_number": "03001234567",
        "permissions": [{"feature": "credits", "can_view": true, ...}]  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        worker = worker_service.create_worker(
            g.current_user.id,
            email=data.get("email"),
            password=data.get("password"),
            full_name=data.get("full_name"),
            phone_number=data.get("phone_number"),
            permissions=data.get("permissions"),
        )
        return jsonify({"worker": _worker_dict(worker)}), 201
    except Exception as exc:
        return json_error(exc, "Failed to create worker")


@workers_bp.delete("/<int:worker_id>")
@require_auth
@require_admin
def deactivate_worker_route(worker_id: int):
    """Deactivate the worker and revoke all of its sessions."""
    try:
        worker = worker_service.deactivate_worker(
            g.current_user.id, worker_id, ip_address=request.remote_addr
        )
        return jsonify({"worker": worker.to_dict(), "message": "Worker deactivated"})
    except Exception as exc:
        return json_error(exc, "Failed to deactivate worker")


@workers_bp.get("/<int:worker_id>/permissions")
@require_auth
@require_admin
def get_worker_permissions_route(worker_id: int):
    try:
        worker = worker_service.get_worker(g.current_user.id, worker_id)
        return jsonify({
            "worker_id": worker.id,
            "permissions": permission_service.permission_matrix(worker.id),
        })
    except Exception as exc:
        return json_error(exc, "Failed to load worker permissions")


@workers_bp.put("/<int:worker_id>/permissions")
@require_auth
@require_admin
def replace_worker_permissions_route(worker_id: int):
    """
    Replace the whole permission matrix.

    Request body: {"permissions": [{"feature": "sales", "can_view": true}, ...]}
    Features left out end up with no access.
    """
    try:
        data = request.get_json(silent=True) or {}
        worker = worker_service.get_worker(g.current_user.id, worker_id)
        matrix = permission_service.replace_permissions(worker.id, data.get("permissions"))
        return jsonify({"worker_id": worker.id, "permissions": matrix})
    except Exception as exc:
        return json_error(exc, "Failed to update worker permissions")
