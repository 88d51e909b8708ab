"""
Webhook server — Flask app factory.

Receives GitHub ``pull_request`` events and runs the diff pipeline for
each in a background thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from flask import Flask, jsonify

from chart_val.core.config.loader import Settings
from chart_val.core.use_cases.wiring import Services, github_services

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    services_factory: Callable[[], Services] | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        settings: Runtime settings (default: all defaults).
        services_factory: Builds the collaborators for one run.  Defaults
            to GitHub-backed services that publish their reports.

    Returns:
        Configured Flask application.
    """
    settings = settings or Settings()

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["WEBHOOK_SECRET"] = settings.server.webhook_secret
    app.config["SERVICES_FACTORY"] = services_factory or (
        lambda: github_services(settings, publish=True)
    )
    app.config["MAX_CONTENT_LENGTH"] = 25 * 1024 * 1024  # GitHub caps payloads at 25 MB

    from chart_val.ui.web.routes_webhook import RunRegistry, webhook_bp

    app.extensions["chart_val_runs"] = RunRegistry()
    app.register_blueprint(webhook_bp)

    @app.route("/health")
    def health():  # type: ignore[no-untyped-def]
        return jsonify({"status": "healthy"})

    logger.info("Webhook app created (signature check %s)", "on" if settings.server.webhook_secret else "off")
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 8080,
    debug: bool = False,
) -> None:
    """Run the Flask development server."""
    logger.info("Starting webhook receiver on %s:%d", host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False)
