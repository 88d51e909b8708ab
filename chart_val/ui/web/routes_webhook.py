"""
Webhook routes — GitHub pull_request events.

Blueprint: webhook_bp

Endpoints:
    POST /webhook   — accept a pull_request event, diff in the background

Only ``opened``, ``synchronize`` and ``reopened`` actions start a run.
A newer event for the same pull request cancels the run still in
flight for it, so only the latest head gets reported.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import threading

from flask import Blueprint, current_app, jsonify, request

from chart_val.core.cancel import CancelToken
from chart_val.core.errors import ChartValError, PipelineCancelled
from chart_val.core.models import PRContext

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__)

HANDLED_ACTIONS = frozenset({"opened", "synchronize", "reopened"})


class RunRegistry:
    """Background runs keyed by pull request, at most one live per PR."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: dict[tuple[str, int], CancelToken] = {}
        self._threads: list[threading.Thread] = []

    def start(self, pr: PRContext, target) -> threading.Thread:  # type: ignore[no-untyped-def]
        """Cancel any run for *pr* and start ``target(pr, token)`` in a thread."""
        key = (pr.slug, pr.number)
        token = CancelToken()

        def _run() -> None:
            try:
                target(pr, token)
            finally:
                with self._lock:
                    if self._tokens.get(key) is token:
                        del self._tokens[key]

        thread = threading.Thread(target=_run, name=f"chart-val-pr-{pr.number}", daemon=True)
        with self._lock:
            previous = self._tokens.get(key)
            if previous is not None:
                logger.info("Cancelling in-flight run for %s#%d", pr.slug, pr.number)
                previous.cancel()
            self._tokens[key] = token
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()
        return thread

    def active(self) -> int:
        with self._lock:
            return len(self._tokens)

    def wait(self, timeout: float | None = None) -> None:
        """Join every started run (tests and shutdown)."""
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)


def _signature_valid(secret: str, body: bytes, header: str | None) -> bool:
    if not header or not header.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, header.removeprefix("sha256="))


def _parse_pull_request(payload: dict) -> PRContext:
    """Extract the comparison scope; raises KeyError/TypeError/ValueError."""
    pr = payload["pull_request"]
    repo = payload["repository"]
    return PRContext(
        owner=repo["owner"]["login"],
        repo=repo["name"],
        number=int(payload.get("number") or pr["number"]),
        base_ref=pr["base"]["ref"],
        head_ref=pr["head"]["ref"],
        head_sha=pr["head"]["sha"],
    )


def _process(pr: PRContext, token: CancelToken, services_factory) -> None:  # type: ignore[no-untyped-def]
    from chart_val.core.use_cases.diff_pr import run_diff

    try:
        services = services_factory()
        report = run_diff(pr, services, publish=services.publisher is not None, cancel=token)
    except PipelineCancelled:
        logger.info("Run for %s#%d cancelled", pr.slug, pr.number)
        return
    except ChartValError as e:
        logger.error("Run for %s#%d failed: %s", pr.slug, pr.number, e)
        return
    except Exception:
        logger.exception("Run for %s#%d crashed", pr.slug, pr.number)
        return

    logger.info(
        "Run for %s#%d finished: %d chart(s), %d check run(s)",
        pr.slug, pr.number, len(report.charts), len(report.check_runs),
    )


@webhook_bp.route("/webhook", methods=["POST"])
def webhook():  # type: ignore[no-untyped-def]
    """Accept a GitHub webhook delivery."""
    body = request.get_data()
    secret = current_app.config.get("WEBHOOK_SECRET")
    if secret and not _signature_valid(secret, body, request.headers.get("X-Hub-Signature-256")):
        logger.warning("Rejected webhook with invalid signature")
        return jsonify({"error": "invalid signature"}), 401

    event = request.headers.get("X-GitHub-Event", "")
    if event != "pull_request":
        return jsonify({"status": "ignored", "reason": f"event '{event}'"}), 200

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "invalid JSON payload"}), 400

    action = payload.get("action")
    if action not in HANDLED_ACTIONS:
        return jsonify({"status": "ignored", "reason": f"action '{action}'"}), 200

    try:
        pr = _parse_pull_request(payload)
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"malformed pull_request payload: {e}"}), 400

    factory = current_app.config["SERVICES_FACTORY"]
    registry: RunRegistry = current_app.extensions["chart_val_runs"]
    registry.start(pr, lambda p, token: _process(p, token, factory))

    logger.info("Accepted %s for %s#%d (head %s)", action, pr.slug, pr.number, pr.head_sha[:7])
    return jsonify({"status": "accepted", "pull_request": f"{pr.slug}#{pr.number}"}), 202
