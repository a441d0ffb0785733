from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from warikan.api.validators import (
    ApiValidationError,
    parse_granularity,
    parse_mode,
    parse_participants,
    parse_total,
)
from warikan.domain.allocation import AllocationError, allocate, choose_best_mode
from warikan.domain.models import SUPPORTED_GRANULARITIES, RoundingMode
from warikan.domain.money import format_yen
from warikan.domain.weights import DEFAULT_ROLE, ROLE_WEIGHT, describe_weight

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")

_DEFAULT_GRANULARITY = 100
_DEFAULT_MODE = RoundingMode.NEAREST.value
_DEFAULT_MAX_PARTICIPANTS = 100


def _json_error(message: str, *, status: int = 400, code: str = "bad_request"):
    return jsonify({"error": {"code": code, "message": message}}), status


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ApiValidationError("Request body must be a JSON object.")
    return data


def _max_participants() -> int:
    return int(current_app.config.get("MAX_PARTICIPANTS", _DEFAULT_MAX_PARTICIPANTS))


def _result_payload(result) -> Dict[str, Any]:
    payload = result.to_dict()
    payload["formatted"] = {
        "sum_rounded": format_yen(result.sum_rounded),
        "total": format_yen(result.total),
        "amounts_by_id": {pid: format_yen(v) for pid, v in result.amounts_by_id.items()},
    }
    return payload


@api_bp.get("/health")
def health():
    return jsonify({"status": "ok"}), 200


@api_bp.get("/roles")
def roles_endpoint():
    return jsonify(
        {
            "roles": [{"role": r.value, "multiplier": m} for r, m in ROLE_WEIGHT.items()],
            "default_role": DEFAULT_ROLE.value,
            "granularities": list(SUPPORTED_GRANULARITIES),
            "modes": [m.value for m in RoundingMode],
        }
    ), 200


@api_bp.post("/weights")
def weights_endpoint():
    """
    JSON: {participants: [{id, name?, role?, age?, exempt?, custom_weight?}]}
    Response: {weights: [{id, role, role_multiplier, age_adjustment, base_weight, effective_weight}]}
    """
    try:
        data = _json_body()
        participants = parse_participants(
            data.get("participants"), max_participants=_max_participants()
        )
    except ApiValidationError as e:
        logger.info("rejected /weights payload: %s", e)
        return _json_error(str(e), status=400)

    weights = []
    for p in participants:
        row = describe_weight(p).to_dict()
        row["id"] = p.id
        weights.append(row)
    return jsonify({"weights": weights}), 200


@api_bp.post("/allocate")
def allocate_endpoint():
    """
    JSON: {participants, total, granularity?, mode?}
    Missing granularity/mode fall back to app config.
    """
    try:
        data = _json_body()
        if "total" not in data:
            raise ApiValidationError("Missing field: total")
        participants = parse_participants(
            data.get("participants"), max_participants=_max_participants()
        )
        total = parse_total(data["total"])
        granularity = parse_granularity(
            data.get("granularity"),
            current_app.config.get("DEFAULT_GRANULARITY", _DEFAULT_GRANULARITY),
        )
        mode = parse_mode(data.get("mode"), current_app.config.get("DEFAULT_MODE", _DEFAULT_MODE))
    except ApiValidationError as e:
        logger.info("rejected /allocate payload: %s", e)
        return _json_error(str(e), status=400)

    try:
        result = allocate(participants, total, granularity, mode)
    except AllocationError as e:
        return _json_error(str(e), status=422, code="allocation_failed")

    return jsonify(_result_payload(result)), 200


@api_bp.post("/allocate/best")
def allocate_best_endpoint():
    """
    JSON: {participants, total, granularity?}
    Tries floor, nearest and ceil and returns the one with the least overshoot.
    """
    try:
        data = _json_body()
        if "total" not in data:
            raise ApiValidationError("Missing field: total")
        participants = parse_participants(
            data.get("participants"), max_participants=_max_participants()
        )
        total = parse_total(data["total"])
        granularity = parse_granularity(
            data.get("granularity"),
            current_app.config.get("DEFAULT_GRANULARITY", _DEFAULT_GRANULARITY),
        )
    except ApiValidationError as e:
        logger.info("rejected /allocate/best payload: %s", e)
        return _json_error(str(e), status=400)

    try:
        result = choose_best_mode(participants, total, granularity)
    except AllocationError as e:
        return _json_error(str(e), status=422, code="allocation_failed")

    logger.debug("auto-selected mode %s (overshoot %d)", result.mode.value, result.overshoot)
    return jsonify(_result_payload(result)), 200
