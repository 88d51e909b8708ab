"""
Tests for the webhook receiver — app factory, event filtering,
signatures, background runs and cancellation of superseded runs.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import threading

import pytest
from flask.testing import FlaskClient

from chart_val.adapters.helm.env_discovery import ValuesFileDiscovery
from chart_val.adapters.mock import (
    DirectorySource,
    RecordingPublisher,
    StaticChangedFiles,
    ValuesEchoRenderer,
)
from chart_val.core.cancel import CancelToken
from chart_val.core.config.loader import ServerSettings, Settings
from chart_val.core.engine.diff_engine import DiffEngine
from chart_val.core.engine.pipeline import DiffPipeline
from chart_val.core.engine.runner import EnvironmentRunner
from chart_val.core.models import PRContext
from chart_val.core.use_cases.wiring import Services
from chart_val.ui.web.routes_webhook import RunRegistry
from chart_val.ui.web.server import create_app


def _payload(action: str = "opened", number: int = 42, sha: str = "abc1234def") -> dict:
    return {
        "action": action,
        "number": number,
        "pull_request": {
            "number": number,
            "base": {"ref": "main"},
            "head": {"ref": "feature", "sha": sha},
        },
        "repository": {"name": "platform", "owner": {"login": "acme"}},
    }


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def app(tmp_path, write_chart, publisher):
    base, head = tmp_path / "base", tmp_path / "head"
    write_chart(base, "app", {"values.yaml": "replicas: 1\n"})
    write_chart(head, "app", {"values.yaml": "replicas: 2\n"})

    def factory() -> Services:
        runner = EnvironmentRunner(ValuesEchoRenderer(), DiffEngine())
        return Services(
            pipeline=DiffPipeline(
                DirectorySource({"main": base, "abc1234def": head}), ValuesFileDiscovery(), runner
            ),
            changed_files=StaticChangedFiles(["charts/app/values.yaml"]),
            publisher=publisher,
        )

    app = create_app(Settings(), services_factory=factory)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app) -> FlaskClient:
    return app.test_client()


def _post(client: FlaskClient, payload, event: str = "pull_request", headers: dict | None = None):
    return client.post(
        "/webhook",
        data=json.dumps(payload) if not isinstance(payload, (bytes, str)) else payload,
        headers={"X-GitHub-Event": event, "Content-Type": "application/json", **(headers or {})},
    )


# ── App Factory ─────────────────────────────────────────────────────


class TestAppFactory:
    def test_health(self, client: FlaskClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "healthy"}

    def test_default_factory(self):
        app = create_app()
        assert callable(app.config["SERVICES_FACTORY"])
        assert isinstance(app.extensions["chart_val_runs"], RunRegistry)


# ── Event handling ──────────────────────────────────────────────────


class TestWebhook:
    def test_opened_runs_and_publishes(self, app, client: FlaskClient, publisher):
        resp = _post(client, _payload("opened"))
        assert resp.status_code == 202
        assert resp.get_json()["pull_request"] == "acme/platform#42"

        app.extensions["chart_val_runs"].wait(timeout=10)
        assert [c[:2] for c in publisher.check_runs] == [("app", "neutral")]
        assert len(publisher.comments) == 1

    @pytest.mark.parametrize("action", ["synchronize", "reopened"])
    def test_other_handled_actions(self, app, client, action):
        assert _post(client, _payload(action)).status_code == 202
        app.extensions["chart_val_runs"].wait(timeout=10)

    def test_ignored_action(self, client, publisher):
        resp = _post(client, _payload("closed"))
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ignored"
        assert publisher.comments == []

    def test_ignored_event(self, client):
        resp = _post(client, {"zen": "Keep it simple."}, event="ping")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ignored"

    def test_invalid_json(self, client):
        assert _post(client, "{not json").status_code == 400

    def test_malformed_pull_request(self, client):
        payload = _payload()
        del payload["pull_request"]["head"]
        assert _post(client, payload).status_code == 400


# ── Signatures ──────────────────────────────────────────────────────


class TestSignature:
    @pytest.fixture
    def signed_client(self, app) -> FlaskClient:
        app.config["WEBHOOK_SECRET"] = "s3cret"
        return app.test_client()

    def test_valid_signature(self, app, signed_client):
        body = json.dumps(_payload("closed")).encode()
        digest = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        resp = _post(signed_client, body, headers={"X-Hub-Signature-256": f"sha256={digest}"})
        assert resp.status_code == 200

    def test_missing_signature(self, signed_client):
        assert _post(signed_client, _payload()).status_code == 401

    def test_wrong_signature(self, signed_client):
        resp = _post(signed_client, _payload(), headers={"X-Hub-Signature-256": "sha256=deadbeef"})
        assert resp.status_code == 401

    def test_secret_from_settings(self):
        app = create_app(Settings(server=ServerSettings(webhook_secret="abc")))
        assert app.config["WEBHOOK_SECRET"] == "abc"


# ── Run registry ────────────────────────────────────────────────────


class TestRunRegistry:
    def test_newer_run_cancels_previous(self):
        registry = RunRegistry()
        pr = PRContext(owner="acme", repo="platform", number=1, base_ref="main", head_ref="f")
        started = threading.Event()
        release = threading.Event()
        tokens: list[CancelToken] = []

        def slow(_pr, token):
            tokens.append(token)
            started.set()
            release.wait(5)

        registry.start(pr, slow)
        assert started.wait(5)
        registry.start(pr, lambda _pr, token: tokens.append(token))
        release.set()
        registry.wait(timeout=5)

        assert len(tokens) == 2
        assert tokens[0].cancelled
        assert not tokens[1].cancelled
        assert registry.active() == 0

    def test_different_prs_independent(self):
        registry = RunRegistry()
        tokens: dict[int, CancelToken] = {}
        release = threading.Event()

        def hold(pr, token):
            tokens[pr.number] = token
            release.wait(5)

        for number in (1, 2):
            registry.start(
                PRContext(owner="a", repo="b", number=number, base_ref="main", head_ref="f"), hold
            )
        release.set()
        registry.wait(timeout=5)
        assert not any(token.cancelled for token in tokens.values())
