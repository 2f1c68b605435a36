from __future__ import annotations

import logging
from datetime import datetime

from flask import Flask, jsonify, request

from ..common.datetime_utils import format_clock
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_DAYS
from ..core.enums import ActivityType
from ..core.exceptions import DomainError, InvalidTransition, SelfieUploadFailed, ValidationError
from ..core.result import Result
from ..status.presentation import describe_status
from .codec import location_from_dict, to_payload

logger = logging.getLogger(__name__)


def error_response(error: Exception):
    if isinstance(error, InvalidTransition):
        status_code = 409
    elif isinstance(error, SelfieUploadFailed):
        status_code = 502
    elif isinstance(error, DomainError):
        status_code = 400
    else:
        logger.exception("Unhandled error", exc_info=error)
        return jsonify({"success": False, "message": "Internal error"}), 500
    return jsonify({"success": False, "error": type(error).__name__, "message": str(error)}), status_code


def register(app: Flask, container: Container) -> None:
    tracker = container.tracker
    service = container.attendance_service

    def _body() -> dict:
        return request.get_json(silent=True) or {}

    def _action_args(data: dict) -> tuple:
        return location_from_dict(data.get("location")), data.get("notes"), data.get("selfie_ref")

    def _state(now: datetime) -> dict:
        session = service.today_session(now.date())
        totals = service.current_totals(now)
        display = describe_status(
            service.status(now),
            clock_in=session.clock_in if session else None,
            actions=service.available_actions(now),
        )
        return {
            "session": to_payload(session) if session else None,
            "display": display.as_dict(),
            "totals": {**totals.as_dict(), **totals.formatted()},
            "elapsed": format_clock(totals.total_millis),
            "can_start_break": service.can_start_break(now),
        }

    def _respond(result: Result, status_code: int = 200):
        if not result.is_ok:
            return error_response(result.error)
        return jsonify({"success": True, **_state(container.clock())}), status_code

    @app.route("/api/session/today", methods=["GET"], endpoint="session_today")
    def session_today():
        return jsonify(_state(container.clock()))

    @app.route("/api/session/totals", methods=["GET"], endpoint="session_totals")
    def session_totals():
        totals = service.current_totals(container.clock())
        return jsonify({**totals.as_dict(), **totals.formatted(), "elapsed": format_clock(totals.total_millis)})

    @app.route("/api/session/clock-in", methods=["POST"], endpoint="session_clock_in")
    def session_clock_in():
        try:
            result = tracker.clock_in(*_action_args(_body()))
        except Exception as e:
            return error_response(e)
        return _respond(result, 201)

    @app.route("/api/session/clock-out", methods=["POST"], endpoint="session_clock_out")
    def session_clock_out():
        try:
            result = tracker.clock_out(*_action_args(_body()))
        except Exception as e:
            return error_response(e)
        return _respond(result)

    @app.route("/api/session/activities", methods=["POST"], endpoint="session_activity")
    def session_activity():
        data = _body()
        try:
            try:
                activity_type = ActivityType(str(data.get("type", "")))
            except ValueError:
                raise ValidationError(f"Unknown activity type: {data.get('type')!r}")
            result = tracker.record_activity(activity_type, *_action_args(data))
        except Exception as e:
            return error_response(e)
        return _respond(result)

    @app.route("/api/history", methods=["GET"], endpoint="history")
    def history():
        try:
            days = int(request.args.get("days") or DEFAULT_HISTORY_DAYS)
            data = container.history_service.get_history(service.user_id, days=days, today=container.clock().date())
        except ValueError:
            return error_response(ValidationError("days must be an integer"))
        except Exception as e:
            return error_response(e)
        return jsonify({"rows": data.rows, "summary": data.summary})
