from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_caller, json_body, token_required
from ..container import Container
from ..core.enums import PRIVILEGED_DESIGNATION, Operation


def register(app: Flask, container: Container) -> None:
    auth_required = token_required(container.account_service)
    registry = container.identity_registry

    @app.route("/api/employees/validate/<employee_id>", methods=["GET"], endpoint="validate_employee")
    def validate_employee(employee_id: str):
        """Public pre-registration check: is this a District Collector's id?"""
        check = registry.verify(employee_id, PRIVILEGED_DESIGNATION.value)
        status = 200 if check.verified else 400
        return jsonify({"isValid": check.verified, "message": check.message}), status

    @app.route("/api/employees/verify", methods=["POST"], endpoint="verify_employee")
    @auth_required
    def verify_employee():
        data = json_body()
        check = registry.verify(
            data.get("employeeId"),
            data.get("requiredDesignation") or data.get("requiredPosition"),
        )
        return jsonify({"verified": check.verified, "employeeName": check.employee_name, "message": check.message})

    @app.route("/api/employees", methods=["GET"], endpoint="list_employees")
    @auth_required
    def list_employees():
        # Same rule as creation: only administrators manage the registry.
        container.guard.require(current_caller(), Operation.CREATE_EMPLOYEE)
        return jsonify({"success": True, "employees": [e.summary() for e in registry.list_employees()]})

    @app.route("/api/employees", methods=["POST"], endpoint="create_employee")
    @auth_required
    def create_employee():
        data = json_body()
        employee = registry.create_employee(
            current_caller(),
            employee_id=data.get("employeeId", ""),
            name=data.get("name", ""),
            designation=data.get("designation", ""),
        )
        return jsonify({"success": True, "employee": employee.summary()}), 201

    @app.route("/api/employees/<employee_id>", methods=["DELETE"], endpoint="delete_employee")
    @auth_required
    def delete_employee(employee_id: str):
        registry.delete_employee(current_caller(), employee_id)
        return jsonify({"success": True, "message": "Employee deleted"})
