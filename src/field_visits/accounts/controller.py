from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_caller, json_body, token_required
from ..container import Container

# Wire names -> service field names for profile edits.
_PROFILE_KEYS = {"username": "username", "email": "email", "password": "password"}


def register(app: Flask, container: Container) -> None:
    auth_required = token_required(container.account_service)

    @app.route("/api/auth/register", methods=["POST"], endpoint="register")
    def register_account():
        data = json_body()
        result = container.account_service.register(
            username=data.get("username", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=data.get("role", ""),
            employee_id=data.get("employeeId", ""),
            designation=data.get("designation") or data.get("employeeRole"),
        )
        return jsonify(result.as_dict()), 201

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        result = container.account_service.authenticate(
            username=data.get("username", ""),
            password=data.get("password", ""),
            role=data.get("role"),
            employee_id=data.get("employeeId"),
            designation=data.get("designation") or data.get("employeeRole"),
        )
        return jsonify(result.as_dict())

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @auth_required
    def me():
        account = container.account_service.get_profile(current_caller())
        return jsonify({"success": True, "user": account.summary()})

    @app.route("/api/users/profile", methods=["PUT"], endpoint="update_profile")
    @auth_required
    def update_profile():
        data = json_body()
        # Unknown keys pass through untouched so the service can reject them.
        changes = {_PROFILE_KEYS.get(k, k): v for k, v in data.items()}
        account = container.account_service.update_profile(current_caller(), changes)
        return jsonify({"success": True, "message": "Profile updated", "user": account.summary()})
