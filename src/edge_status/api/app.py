"""
Flask REST API for EdgeStatus.

Exposes identity status, enable/disable toggles, MFA authentication
requests and control-plane refreshes over the identity registry.
"""

from __future__ import annotations

import time

from flask import Flask, jsonify, request

from ..client import InMemoryControlPlaneClient
from ..errors import ServiceError
from ..identity import IdentityRegistry, Identity


def _identity_payload(registry: IdentityRegistry, identity: Identity) -> dict:
    data = identity.to_dict()
    data["display"] = registry.status(identity.fingerprint).to_dict()
    tracker = registry.get_tracker(identity.fingerprint)
    data["state"] = tracker.state.value if tracker else None
    return data


def _json_object() -> dict | None:
    """The request body as a dict: empty when there is none, None when it is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def create_app(registry: IdentityRegistry | None = None) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(__name__)

    reg = registry or IdentityRegistry(client=InMemoryControlPlaneClient())
    app.extensions["edge_status.registry"] = reg

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "healthy", "timestamp": time.time()})

    @app.route("/api/v1/identities", methods=["GET"])
    def identities():
        return jsonify({
            "identities": [_identity_payload(reg, i) for i in reg.list_identities()],
        })

    @app.route("/api/v1/identities/<fingerprint>", methods=["GET"])
    def identity_detail(fingerprint: str):
        identity = reg.get_identity(fingerprint)
        if identity is None:
            return jsonify({"error": "identity_not_found"}), 404
        return jsonify(_identity_payload(reg, identity))

    @app.route("/api/v1/identities/<fingerprint>/enabled", methods=["POST"])
    def identity_enabled(fingerprint: str):
        data = _json_object()
        if data is None or not isinstance(data.get("enabled"), bool):
            return jsonify({"error": "enabled must be a boolean"}), 400
        try:
            identity = reg.set_enabled(fingerprint, data["enabled"])
        except KeyError:
            return jsonify({"error": "identity_not_found"}), 404
        except ServiceError as exc:
            return jsonify(exc.to_dict()), 502
        return jsonify(_identity_payload(reg, identity))

    @app.route("/api/v1/identities/<fingerprint>/authenticate", methods=["POST"])
    def identity_authenticate(fingerprint: str):
        data = _json_object()
        if data is None:
            return jsonify({"error": "body must be a JSON object"}), 400
        try:
            reg.request_authentication(fingerprint, str(data.get("code", "")))
        except KeyError:
            return jsonify({"error": "identity_not_found"}), 404
        return jsonify({"status": "accepted", "fingerprint": fingerprint}), 202

    @app.route("/api/v1/refresh", methods=["POST"])
    def refresh():
        try:
            applied = reg.refresh()
        except ServiceError as exc:
            return jsonify(exc.to_dict()), 502
        return jsonify({"status": "refreshed", "identity_count": len(applied)})

    @app.route("/api/v1/summary", methods=["GET"])
    def summary():
        return jsonify(reg.summary())

    return app
