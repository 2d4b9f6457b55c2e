from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from newsflow.processors.llm_client import RateLimitedError

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)


def _get_pipeline():
    return current_app.config["PIPELINE"]


def _get_fact_checker():
    return current_app.config["FACT_CHECKER"]


@api.route("/health", methods=["GET"])
def health() -> tuple:
    return jsonify({"status": "ok"}), 200


@api.route("/process-news", methods=["POST"])
def process_news() -> tuple:
    try:
        result = _get_pipeline().run()
    except Exception as exc:
        logger.exception("Error in process-news: %s", exc)
        return jsonify({"success": False, "error": str(exc)}), 500

    status = 200 if result.success else 500
    return jsonify(result.to_json()), status


@api.route("/verify-summary", methods=["POST"])
def verify_summary() -> tuple:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    title = data.get("title") or ""
    original_content = data.get("originalContent")
    ai_summary = data.get("aiSummary")
    attempt_number = data.get("attemptNumber") or 1

    if not original_content or not ai_summary:
        return jsonify({"error": "originalContent and aiSummary are required"}), 400
    if not isinstance(attempt_number, int):
        return jsonify({"error": "attemptNumber must be an integer"}), 400

    try:
        result = _get_fact_checker().check(title, original_content, ai_summary, attempt_number)
    except RateLimitedError:
        return jsonify({"error": "Rate limit exceeded", "retryAfter": 5}), 429
    except Exception as exc:
        logger.exception("verify-summary error: %s", exc)
        return jsonify({"error": str(exc), "isValid": False, "status": "pending"}), 500

    return jsonify(result.to_payload()), 200
