from __future__ import annotations

from flask import Flask, jsonify

from ..container import Container
from ..session.controller import error_response
from ..status.presentation import EMPLOYEE_STATUS_COLORS, EMPLOYEE_STATUS_LABELS
from .model import EmployeeSnapshot


def _employee_json(e: EmployeeSnapshot) -> dict:
    return {
        "user_id": e.user_id,
        "full_name": e.full_name,
        "department": e.department,
        "position": e.position,
        "status": e.status.value,
        "status_label": EMPLOYEE_STATUS_LABELS[e.status],
        "status_color": EMPLOYEE_STATUS_COLORS[e.status],
        "clock_in": e.clock_in.isoformat() if e.clock_in else None,
        "updated_at": e.updated_at.isoformat() if e.updated_at else None,
    }


def register(app: Flask, container: Container) -> None:
    reconciler = container.reconciler

    @app.route("/api/roster", methods=["GET"], endpoint="roster")
    def roster():
        today = container.clock().date()
        employees = container.roster.snapshots(today)
        return jsonify(
            {
                "employees": [_employee_json(e) for e in employees],
                "counts": container.roster.counts(today),
            }
        )

    @app.route("/api/sync/status", methods=["GET"], endpoint="sync_status")
    def sync_status():
        return jsonify(reconciler.status())

    @app.route("/api/sync/refresh", methods=["POST"], endpoint="sync_refresh")
    def sync_refresh():
        """Manual refresh: clears an exhausted reconnect and reloads remote state."""
        try:
            container.tracker.refresh()
        except Exception as e:
            return error_response(e)
        return jsonify({"success": True, **reconciler.status()})

    @app.route("/api/sync/retry", methods=["POST"], endpoint="sync_retry")
    def sync_retry():
        results = reconciler.retry_pending()
        failed = [str(r.error) for r in results if not r.is_ok]
        return jsonify({"success": not failed, "failed": failed, **reconciler.status()}), (502 if failed else 200)
