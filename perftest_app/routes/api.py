"""
REST API Endpoints for the Performance Test Service.

Exposes CRUD for performance test definitions, status transitions, the
scheduler views (running tests, next candidate) and the sampled metric
reports.  Every endpoint except the health check requires a bearer JWT.
Ordinary users only see their own tests; a test owned by someone else
answers ``404`` exactly like a missing one.

Endpoints:
    GET    /api/health                           - Service health check (public)
    GET    /api/perftests                        - Paged listing with search
    GET    /api/perftests/running                - Tests currently in TESTING
    GET    /api/perftests/candidate              - Next READY test (elevated roles)
    GET    /api/perftests/<id>                   - Retrieve a single test
    POST   /api/perftests                        - Create a test
    PUT    /api/perftests/<id>                   - Merge fields into a test
    DELETE /api/perftests/<id>                   - Delete a test
    PATCH  /api/perftests/<id>/status            - Change lifecycle status
    GET    /api/perftests/<id>/report/<metric>   - Downsampled metric log
"""

from __future__ import annotations

import logging
import os
from typing import Any

from flask import Blueprint, Response, current_app, g, jsonify, request

from ..auth import owner_restriction, require_auth, require_elevated_role
from ..filters import build_list_predicate
from ..models import PerfTestStatus
from ..report import Cancelled, InvalidParameter, LogUnavailable, ReadFailure, ReportError
from ..store import PerfTestStore

logger = logging.getLogger(__name__)

api_bp = Blueprint("perftest_api", __name__)

POSITIVE_INT_FIELDS = ("agent_count", "vuser_per_agent", "duration_seconds", "run_count")
TEXT_FIELDS = ("description", "target_hosts", "script_name")
TRUTHY_VALUES = {"1", "true", "yes", "on"}


# =====================================================================
# Helper Functions
# =====================================================================


def validate_perf_test_data(
    data: dict, required_fields: list[str] | None = None
) -> tuple[bool, str | None]:
    """
    Validate an incoming test payload.

    Checks required fields, test name length, status membership, that
    count/duration fields are positive integers and that text fields are
    strings.

    Returns:
        A two-element tuple ``(is_valid, error_message)``.
    """
    if required_fields:
        for field in required_fields:
            value = data.get(field)
            if not value or (isinstance(value, str) and not value.strip()):
                return False, f"'{field}' is required"

    if "test_name" in data and data["test_name"] is not None:
        if not isinstance(data["test_name"], str) or not data["test_name"].strip():
            return False, "'test_name' must be a non-empty string"
        if len(data["test_name"]) > 200:
            return False, "test_name must be 200 characters or less"

    if "status" in data:
        valid_statuses = [s.value for s in PerfTestStatus]
        if data["status"] not in valid_statuses:
            return False, f"Invalid status. Must be one of: {valid_statuses}"

    for field in POSITIVE_INT_FIELDS:
        value = data.get(field)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return False, f"{field} must be a positive integer"

    for field in TEXT_FIELDS:
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            return False, f"{field} must be a string"

    return True, None


def _positive_int_arg(name: str, default: int) -> int | None:
    """Read a positive integer query argument; ``None`` when malformed."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def _visible_perf_test(store: PerfTestStore, test_id: int) -> dict[str, Any] | None:
    """Return the test snapshot if it exists and the caller may see it."""
    perf_test = store.get_perf_test(test_id)
    if perf_test is None:
        return None
    owner = owner_restriction()
    if owner is not None and perf_test["created_by"] != owner:
        return None
    return perf_test


def _not_found() -> tuple[Response, int]:
    return jsonify({"error": "Perftest not found"}), 404


# =====================================================================
# API Endpoints
# =====================================================================


@api_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """Public liveness probe."""
    return (
        jsonify(
            {
                "status": "healthy",
                "service": "perftests",
                "environment": os.getenv("ENVIRONMENT", "unknown"),
            }
        ),
        200,
    )


@api_bp.route("/perftests", methods=["GET"])
@require_auth
def list_perf_tests() -> tuple[Response, int]:
    """
    List tests visible to the caller, one page at a time.

    Query Parameters:
        query: Case-insensitive search over name and description.
        finished: When truthy, only ``FINISHED`` tests are listed.
        page / per_page: 1-based page number and page size.
        sort / order: Sort field and ``asc``/``desc`` direction.
    """
    page = _positive_int_arg("page", 1)
    per_page = _positive_int_arg("per_page", current_app.config["DEFAULT_PAGE_SIZE"])
    if page is None or per_page is None:
        return jsonify({"error": "page and per_page must be positive integers"}), 400
    per_page = min(per_page, current_app.config["MAX_PAGE_SIZE"])

    predicate = build_list_predicate(
        restrict_to_owner=owner_restriction(),
        finished_only=request.args.get("finished", "").lower() in TRUTHY_VALUES,
        query=request.args.get("query"),
    )
    logger.info("GET /api/perftests - user_id=%s page=%s", g.user_id, page)

    result = PerfTestStore.for_current_app().list_perf_tests(
        predicate,
        page=page,
        per_page=per_page,
        sort=request.args.get("sort", "created_at"),
        order=request.args.get("order", "desc"),
    )
    return jsonify(result.to_dict()), 200


@api_bp.route("/perftests/running", methods=["GET"])
@require_auth
def list_running_perf_tests() -> tuple[Response, int]:
    """List tests in ``TESTING`` status that the caller may see."""
    running = PerfTestStore.for_current_app().get_testing_perf_tests()
    owner = owner_restriction()
    if owner is not None:
        running = [perf_test for perf_test in running if perf_test["created_by"] == owner]
    return jsonify({"perftests": running, "count": len(running)}), 200


@api_bp.route("/perftests/candidate", methods=["GET"])
@require_auth
@require_elevated_role
def get_candidate() -> tuple[Response, int]:
    """Return the next ``READY`` test to run, or 404 when the queue is empty."""
    candidate = PerfTestStore.for_current_app().get_perf_test_candidate()
    if candidate is None:
        return jsonify({"error": "No test is ready to run"}), 404
    return jsonify(candidate), 200


@api_bp.route("/perftests/<int:test_id>", methods=["GET"])
@require_auth
def get_perf_test(test_id: int) -> tuple[Response, int]:
    perf_test = _visible_perf_test(PerfTestStore.for_current_app(), test_id)
    if perf_test is None:
        return _not_found()
    return jsonify(perf_test), 200


@api_bp.route("/perftests", methods=["POST"])
@require_auth
def create_perf_test() -> tuple[Response, int]:
    """
    Create a test owned by the caller.

    Expects a JSON body with at least ``test_name``.
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({"error": "Request body must be JSON"}), 400

    is_valid, error = validate_perf_test_data(data, required_fields=["test_name"])
    if not is_valid:
        return jsonify({"error": error}), 400

    perf_test = PerfTestStore.for_current_app().create_perf_test(g.user_id, data)
    return jsonify(perf_test), 201


@api_bp.route("/perftests/<int:test_id>", methods=["PUT"])
@require_auth
def update_perf_test(test_id: int) -> tuple[Response, int]:
    """
    Merge the supplied fields into a test.

    Fields that are absent or ``null`` keep their stored value.  A ``status``
    key is rejected with 400; status goes through the PATCH endpoint.
    """
    store = PerfTestStore.for_current_app()
    if _visible_perf_test(store, test_id) is None:
        return _not_found()

    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({"error": "Request body must be JSON"}), 400
    if "status" in data:
        return (
            jsonify({"error": f"Use PATCH /api/perftests/{test_id}/status to change status"}),
            400,
        )

    is_valid, error = validate_perf_test_data(data)
    if not is_valid:
        return jsonify({"error": error}), 400

    perf_test = store.update_perf_test(test_id, data)
    if perf_test is None:
        return _not_found()
    return jsonify(perf_test), 200


@api_bp.route("/perftests/<int:test_id>", methods=["DELETE"])
@require_auth
def delete_perf_test(test_id: int) -> tuple[Response, int]:
    store = PerfTestStore.for_current_app()
    if _visible_perf_test(store, test_id) is None or not store.delete_perf_test(test_id):
        return _not_found()
    return jsonify({"message": "Perftest deleted successfully"}), 200


@api_bp.route("/perftests/<int:test_id>/status", methods=["PATCH"])
@require_auth
def update_perf_test_status(test_id: int) -> tuple[Response, int]:
    """Change only the lifecycle status of a test."""
    store = PerfTestStore.for_current_app()
    if _visible_perf_test(store, test_id) is None:
        return _not_found()

    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict) or "status" not in data:
        return jsonify({"error": "'status' field is required"}), 400

    valid_statuses = [s.value for s in PerfTestStatus]
    if data["status"] not in valid_statuses:
        return jsonify({"error": f"Invalid status. Must be one of: {valid_statuses}"}), 400

    perf_test = store.update_status(test_id, data["status"])
    if perf_test is None:
        return _not_found()
    return jsonify(perf_test), 200


@api_bp.route("/perftests/<int:test_id>/report/<metric>", methods=["GET"])
@require_auth
def get_report(test_id: int, metric: str) -> tuple[Response, int]:
    """
    Return the metric log of a test downsampled for a chart.

    Query Parameters:
        width: Chart width; one point is produced per 10 units.
    """
    store = PerfTestStore.for_current_app()
    if _visible_perf_test(store, test_id) is None:
        return _not_found()

    width = request.args.get("width", type=int)
    data = store.get_report_data(
        test_id,
        metric,
        width,
        timeout=current_app.config["REPORT_SAMPLE_TIMEOUT_SECONDS"],
    )
    logger.info(
        "GET report test_id=%s metric=%s width=%s -> %s points",
        test_id,
        metric,
        width,
        len(data),
    )
    return (
        jsonify(
            {
                "test_id": test_id,
                "metric": metric.lower(),
                "width": width,
                "count": len(data),
                "data": data,
            }
        ),
        200,
    )


# =====================================================================
# Error Handlers
# =====================================================================


@api_bp.errorhandler(ReportError)
def report_error(error: ReportError) -> tuple[Response, int]:
    """Translate report failures into JSON errors without leaking paths."""
    if isinstance(error, InvalidParameter):
        message = str(error)
    elif isinstance(error, LogUnavailable):
        message = "Report data not available"
    elif isinstance(error, Cancelled):
        message = "Report generation timed out"
    elif isinstance(error, ReadFailure):
        message = "Failed to read report data"
    else:
        message = "Report generation failed"

    if error.status_code >= 500:
        logger.error("Report failure: %s", error)
    else:
        logger.warning("Report request rejected: %s", error)
    return jsonify({"error": message}), error.status_code


@api_bp.errorhandler(400)
def bad_request(_: Exception) -> tuple[Response, int]:
    """Return a JSON 400 Bad Request error."""
    return jsonify({"error": "Bad request"}), 400


@api_bp.errorhandler(404)
def not_found(_: Exception) -> tuple[Response, int]:
    """Return a JSON 404 Not Found error."""
    return jsonify({"error": "Resource not found"}), 404


@api_bp.errorhandler(500)
def internal_error(error: Exception) -> tuple[Response, int]:
    """Log the exception and return a JSON 500 Internal Server Error."""
    logger.error("Internal server error: %s", error)
    return jsonify({"error": "Internal server error"}), 500
