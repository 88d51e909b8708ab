"""
Tests for the GitHub adapters — gh CLI calls are patched.
"""

from __future__ import annotations

import io
import json
import subprocess
import tarfile
from unittest.mock import patch

import pytest

from chart_val.adapters.github.cli import gh_api, gh_api_json
from chart_val.adapters.github.publisher import MAX_BODY_CHARS, GitHubPublisher, truncate_body
from chart_val.adapters.github.pulls import GitHubPullRequestFiles, fetch_pull_request
from chart_val.adapters.github.source import GitHubTarballSource
from chart_val.core.errors import NotFoundError, TransportError
from chart_val.core.models import PRContext


def _done(stdout: bytes = b"", code: int = 0, stderr: bytes = b"") -> subprocess.CompletedProcess[bytes]:
    return subprocess.CompletedProcess([], code, stdout, stderr)


def _tarball(files: dict[str, bytes], top: str = "acme-platform-abc1234") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(f"{top}/{name}")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


# ═══════════════════════════════════════════════════════════════════
#  gh api wrapper
# ═══════════════════════════════════════════════════════════════════


class TestGhApi:
    def test_builds_command(self):
        with patch("chart_val.adapters.github.cli.run_process", return_value=_done(b"ok")) as run:
            assert gh_api("repos/a/b/pulls/1/files", paginate=True, jq=".[].filename") == b"ok"
        args = run.call_args.args[0]
        assert args == [
            "gh", "api", "repos/a/b/pulls/1/files", "--method", "GET",
            "--paginate", "--jq", ".[].filename",
        ]
        assert run.call_args.kwargs["stdin"] is None

    def test_body_goes_to_stdin(self):
        with patch("chart_val.adapters.github.cli.run_process", return_value=_done()) as run:
            gh_api("repos/a/b/issues/1/comments", method="POST", body={"body": "hi"})
        args = run.call_args.args[0]
        assert args[-2:] == ["--input", "-"]
        assert json.loads(run.call_args.kwargs["stdin"]) == {"body": "hi"}

    def test_failure_is_transport_error(self):
        with patch("chart_val.adapters.github.cli.run_process", return_value=_done(code=1, stderr=b"HTTP 404")):
            with pytest.raises(TransportError, match="HTTP 404"):
                gh_api("repos/a/b")

    def test_gh_missing(self):
        with patch("chart_val.adapters.github.cli.run_process", side_effect=FileNotFoundError("gh")):
            with pytest.raises(TransportError, match="not available"):
                gh_api("repos/a/b")

    def test_invalid_json(self):
        with patch("chart_val.adapters.github.cli.run_process", return_value=_done(b"<html>")):
            with pytest.raises(TransportError):
                gh_api_json("repos/a/b")


# ═══════════════════════════════════════════════════════════════════
#  Pull requests
# ═══════════════════════════════════════════════════════════════════


class TestPulls:
    def test_fetch_pull_request(self):
        payload = {"base": {"ref": "main"}, "head": {"ref": "feature", "sha": "abc123"}}
        with patch("chart_val.adapters.github.pulls.gh_api_json", return_value=payload) as api:
            pr = fetch_pull_request("acme", "platform", 7)
        api.assert_called_once_with("repos/acme/platform/pulls/7")
        assert pr == PRContext(
            owner="acme", repo="platform", number=7,
            base_ref="main", head_ref="feature", head_sha="abc123",
        )

    def test_fetch_pull_request_bad_payload(self):
        with patch("chart_val.adapters.github.pulls.gh_api_json", return_value={"message": "Not Found"}):
            with pytest.raises(TransportError):
                fetch_pull_request("acme", "platform", 7)

    def test_changed_files(self, pr_context):
        listing = b"charts/app/values.yaml\nREADME.md\n\n"
        with patch("chart_val.adapters.github.pulls.gh_api", return_value=listing) as api:
            files = GitHubPullRequestFiles().changed_files(pr_context)
        assert files == ["charts/app/values.yaml", "README.md"]
        assert api.call_args.kwargs["paginate"] is True


# ═══════════════════════════════════════════════════════════════════
#  Tarball source
# ═══════════════════════════════════════════════════════════════════


class TestTarballSource:
    def test_extracts_chart_only(self):
        archive = _tarball({
            "charts/app/Chart.yaml": b"name: app\n",
            "charts/app/templates/svc.yaml": b"kind: Service\n",
            "charts/other/Chart.yaml": b"name: other\n",
            "README.md": b"hi\n",
        })
        with patch("chart_val.adapters.github.source.gh_api", return_value=archive) as api:
            checkout = GitHubTarballSource().fetch_chart_files("acme", "platform", "main", "charts/app")
        try:
            assert api.call_args.args[0] == "repos/acme/platform/tarball/main"
            assert (checkout.path / "Chart.yaml").read_bytes() == b"name: app\n"
            assert (checkout.path / "templates" / "svc.yaml").is_file()
            assert not (checkout.path.parent / "other").exists()
        finally:
            checkout.release()
        assert not checkout.path.exists()

    def test_missing_chart_is_not_found(self):
        archive = _tarball({"charts/other/Chart.yaml": b"name: other\n"})
        with patch("chart_val.adapters.github.source.gh_api", return_value=archive):
            with pytest.raises(NotFoundError):
                GitHubTarballSource().fetch_chart_files("acme", "platform", "main", "charts/app")

    def test_similar_prefix_not_matched(self):
        archive = _tarball({"charts/app-v2/Chart.yaml": b"name: app-v2\n"})
        with patch("chart_val.adapters.github.source.gh_api", return_value=archive):
            with pytest.raises(NotFoundError):
                GitHubTarballSource().fetch_chart_files("acme", "platform", "main", "charts/app")

    def test_corrupt_archive(self):
        with patch("chart_val.adapters.github.source.gh_api", return_value=b"not a tarball"):
            with pytest.raises(TransportError):
                GitHubTarballSource().fetch_chart_files("acme", "platform", "main", "charts/app")

    def test_path_traversal_skipped(self):
        archive = _tarball({"charts/app/../../../../escape.txt": b"x", "charts/app/Chart.yaml": b"name: app\n"})
        with patch("chart_val.adapters.github.source.gh_api", return_value=archive):
            checkout = GitHubTarballSource().fetch_chart_files("acme", "platform", "main", "charts/app")
        try:
            assert not (checkout.path.parent.parent.parent / "escape.txt").exists()
            assert (checkout.path / "Chart.yaml").is_file()
        finally:
            checkout.release()


# ═══════════════════════════════════════════════════════════════════
#  Publisher
# ═══════════════════════════════════════════════════════════════════


class TestPublisher:
    def test_check_run(self, pr_context):
        with patch("chart_val.adapters.github.publisher.gh_api") as api:
            GitHubPublisher().publish_check_run(pr_context, "app", "# doc", "neutral")
        endpoint = api.call_args.args[0]
        body = api.call_args.kwargs["body"]
        assert endpoint == "repos/acme/platform/check-runs"
        assert api.call_args.kwargs["method"] == "POST"
        assert body["name"] == "chart-val: app"
        assert body["head_sha"] == "abc1234def"
        assert body["status"] == "completed"
        assert body["conclusion"] == "neutral"
        assert body["output"] == {"title": "Helm diff — app", "summary": "# doc"}

    def test_check_run_without_sha_skipped(self):
        pr = PRContext(owner="a", repo="b", number=1, base_ref="main", head_ref="feat")
        with patch("chart_val.adapters.github.publisher.gh_api") as api:
            GitHubPublisher().publish_check_run(pr, "app", "# doc", "success")
        api.assert_not_called()

    def test_comment(self, pr_context):
        with patch("chart_val.adapters.github.publisher.gh_api") as api:
            GitHubPublisher().publish_comment(pr_context, "## report")
        assert api.call_args.args[0] == "repos/acme/platform/issues/42/comments"
        assert api.call_args.kwargs["body"] == {"body": "## report"}

    def test_truncate(self):
        assert truncate_body("short") == "short"
        long = "x" * (MAX_BODY_CHARS + 100)
        out = truncate_body(long)
        assert len(out) == MAX_BODY_CHARS
        assert out.endswith("_Output truncated._\n")
