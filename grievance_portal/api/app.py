"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from grievance_portal.config import SESSION_JWT_AUDIENCE
from grievance_portal.database import init_engine, init_schema
from grievance_portal.api.routes import register_routes


def create_app(engine=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    if engine is None:
        try:
            print("[init] Initializing database connection...")
            engine = init_engine()

            print("[init] Ensuring schema...")
            init_schema(engine)

            print("[init] ✓ API server ready")
        except Exception as e:
            print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("College Grievance Portal – REST API Server")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] CORS enabled: True")
    print(f"[server] Session token audience: {SESSION_JWT_AUDIENCE}")
    print("\nAPI Endpoints:")
    print(f"  - GET   http://{host}:{port}/api/taxonomy")
    print(f"  - POST  http://{host}:{port}/api/auth/register")
    print(f"  - GET   http://{host}:{port}/api/user/profile")
    print(f"  - POST  http://{host}:{port}/api/grievances")
    print(f"  - GET   http://{host}:{port}/api/grievances")
    print(f"  - GET   http://{host}:{port}/api/grievances/<id>")
    print(f"  - PATCH http://{host}:{port}/api/grievances/<id>/status")
    print(f"  - GET   http://{host}:{port}/api/stats")
    print(f"  - GET   http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
