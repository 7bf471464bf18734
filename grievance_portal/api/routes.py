"""
Flask route handlers for the REST API.
"""

import sys
import traceback

from flask import jsonify, request

from grievance_portal import taxonomy
from grievance_portal.analysis import compute_status_summary
from grievance_portal.config import MAX_RESULTS_RETURN
from grievance_portal.database import retry_once_on_unavailable
from grievance_portal.errors import (
    AuthorizationError,
    Conflict,
    InvalidTransition,
    NotFound,
    StoreUnavailable,
    ValidationError,
)
from grievance_portal.lifecycle import log_status_change, transition
from grievance_portal.rbac import load_identity, register_identity, require_admin, require_role
from grievance_portal.submission import submit_grievance
from grievance_portal.visibility import apply_filters, get_visible, list_visible
from grievance_portal.api.auth import token_required


def error_response(e: Exception):
    """Map a domain error onto a JSON error response."""
    if isinstance(e, ValidationError):
        return jsonify({"error": "Validation failed", "type": type(e).__name__, "details": str(e)}), 400
    if isinstance(e, AuthorizationError):
        return jsonify({"error": "Forbidden", "details": str(e)}), 403
    if isinstance(e, NotFound):
        return jsonify({"error": "Not found", "details": str(e)}), 404
    if isinstance(e, InvalidTransition):
        return jsonify({
            "error": "Invalid status transition",
            "details": str(e),
            "current_status": e.current,
            "allowed": taxonomy.allowed_next(e.current),
        }), 409
    if isinstance(e, Conflict):
        return jsonify({"error": "Conflict", "details": str(e)}), 409
    if isinstance(e, StoreUnavailable):
        return jsonify({"error": "Store unavailable, please retry", "details": str(e)}), 503

    print(f"[ERROR] Unhandled error: {e}", file=sys.stderr)
    traceback.print_exc()
    return jsonify({"error": "Internal server error"}), 500


def register_routes(app, engine):
    """Register all API routes on the Flask *app*."""

    def current_identity():
        return retry_once_on_unavailable(load_identity, engine, request.user_id)

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "College Grievance Portal API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "taxonomy": "/api/taxonomy",
                "register": "/api/auth/register",
                "profile": "/api/user/profile",
                "grievances": "/api/grievances",
                "stats": "/api/stats",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        from sqlalchemy import text as sa_text

        checks = {"database": False}
        try:
            with engine.connect() as conn:
                conn.execute(sa_text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            print(f"[WARN] Health check failed: {e}", file=sys.stderr)

        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }), 200 if all_healthy else 503

    @app.route("/api/taxonomy", methods=["GET"])
    def get_taxonomy():
        return jsonify({"success": True, **taxonomy.describe()}), 200

    # ── Identity ─────────────────────────────────────────────────────

    @app.route("/api/auth/register", methods=["POST"])
    @token_required
    def register():
        if not request.is_json or not isinstance(request.get_json(silent=True), dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400

        data = request.json
        try:
            identity = register_identity(
                engine,
                request.user_id,
                role=data.get("role", ""),
                full_name=data.get("full_name", ""),
                user_id_number=data.get("user_id_number", ""),
                department=data.get("department", ""),
            )
        except Conflict:
            return jsonify({"error": "A role is already registered for this account"}), 409
        except Exception as e:
            return error_response(e)

        print(f"[auth] Registered {identity.user_id} as {identity.role}")
        return jsonify({"success": True, "user": _identity_json(identity)}), 201

    @app.route("/api/user/profile", methods=["GET"])
    @token_required
    def get_profile():
        try:
            identity = current_identity()
        except Exception as e:
            return error_response(e)
        return jsonify({
            "success": True,
            "user": _identity_json(identity),
            "email": request.token_claims.get("email"),
        }), 200

    # ── Grievances ───────────────────────────────────────────────────

    @app.route("/api/grievances", methods=["POST"])
    @token_required
    def create_grievance():
        if not request.is_json or not isinstance(request.get_json(silent=True), dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400

        try:
            identity = current_identity()
            grievance = submit_grievance(engine, identity, request.json)
        except Exception as e:
            return error_response(e)

        print(f"[submit] {grievance.grievance_id} by {identity.user_id} "
              f"({grievance.category} / {grievance.subcategory})")
        return jsonify({"success": True, "grievance": grievance.to_dict()}), 201

    @app.route("/api/grievances", methods=["GET"])
    @token_required
    def list_grievances():
        max_rows = request.args.get("max_rows", MAX_RESULTS_RETURN, type=int)
        if max_rows < 1:
            return jsonify({"error": "max_rows must be a positive integer"}), 400
        max_rows = min(max_rows, MAX_RESULTS_RETURN)
        try:
            identity = current_identity()
            grievances = retry_once_on_unavailable(list_visible, engine, identity)
        except Exception as e:
            return error_response(e)

        filtered = apply_filters(
            grievances,
            search=request.args.get("q"),
            category=request.args.get("category"),
            status=request.args.get("status"),
        )
        limited = filtered[:max_rows]
        return jsonify({
            "success": True,
            "role": identity.role,
            "count": len(filtered),
            "truncated": len(filtered) > max_rows,
            "grievances": [g.to_dict() for g in limited],
        }), 200

    @app.route("/api/grievances/<key>", methods=["GET"])
    @token_required
    def get_grievance(key):
        try:
            identity = current_identity()
            grievance = retry_once_on_unavailable(get_visible, engine, identity, key)
        except Exception as e:
            return error_response(e)
        return jsonify({
            "success": True,
            "grievance": grievance.to_dict(),
            "allowed_next": taxonomy.allowed_next(grievance.status) if identity.is_admin else [],
        }), 200

    @app.route("/api/grievances/<key>/status", methods=["PATCH", "POST"])
    @token_required
    def update_grievance_status(key):
        if not request.is_json or not isinstance(request.get_json(silent=True), dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400

        new_status = request.json.get("status")
        if not isinstance(new_status, str) or not new_status.strip():
            return jsonify({"error": "status must be a non-empty string"}), 400
        new_status = new_status.strip()

        try:
            identity = current_identity()
            require_admin(identity)
            grievance = retry_once_on_unavailable(get_visible, engine, identity, key)
            updated = transition(engine, grievance, new_status, identity, on_change=log_status_change)
        except Exception as e:
            return error_response(e)

        return jsonify({
            "success": True,
            "changed": updated.status != grievance.status,
            "grievance": updated.to_dict(),
        }), 200

    # ── Stats ────────────────────────────────────────────────────────

    @app.route("/api/stats", methods=["GET"])
    @token_required
    def get_stats():
        try:
            identity = require_role(current_identity())
            grievances = retry_once_on_unavailable(list_visible, engine, identity)
        except Exception as e:
            return error_response(e)
        return jsonify({
            "success": True,
            "role": identity.role,
            "summary": compute_status_summary(grievances),
        }), 200


def _identity_json(identity):
    return {
        "id": identity.user_id,
        "role": identity.role,
        "full_name": identity.full_name,
        "user_id_number": identity.user_id_number,
        "department": identity.department,
    }
