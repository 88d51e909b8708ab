"""
CLI commands for diffing charts.

    local  → two revisions of a local clone
    pr     → a GitHub pull request (optionally publishing the reports)

Thin wrappers over ``chart_val.core.use_cases.diff_pr``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from chart_val.core.use_cases.diff_pr import DiffReport
from chart_val.ui.cli.helpers import load_settings_or_exit


def _write_reports(report: DiffReport, output_dir: Path) -> list[Path]:
    """Write one file per check run plus the summary comment."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for check_run in report.check_runs:
        path = output_dir / f"check-run-{check_run.chart_name}.md"
        path.write_text(check_run.document, encoding="utf-8")
        written.append(path)
    summary = output_dir / "pr-comment.md"
    summary.write_text(report.summary, encoding="utf-8")
    written.append(summary)
    return written


def _emit(ctx: click.Context, report: DiffReport, output_dir: str | None, as_json: bool) -> None:
    written = _write_reports(report, Path(output_dir)) if output_dir else []

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    if not report.charts:
        click.secho("✓ No charts changed", fg="green")
        return

    click.echo(report.summary, nl=False)

    if not ctx.obj.get("quiet"):
        counts = report.outcome.counts()
        click.echo()
        click.secho(
            f"📊 {len(report.charts)} chart(s): {counts.changes} changed, "
            f"{counts.success} unchanged, {counts.errors} errors, "
            f"{len(report.outcome.failures)} failed",
            fg="yellow" if report.has_changes else "green",
            err=True,
        )
        for path in written:
            click.echo(f"   📝 {path}", err=True)
        if report.published:
            click.secho(f"   ✅ Published {len(report.check_runs)} check run(s) and summary comment", err=True)


@click.command()
@click.option("--base", "base_ref", required=True, help="Base revision (branch, tag or SHA).")
@click.option("--head", "head_ref", required=True, help="Head revision (branch, tag or SHA).")
@click.option(
    "--repo",
    "repo_dir",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Local repository (default: current directory).",
)
@click.option("--chart", "charts", multiple=True, help="Only diff this chart (repeatable).")
@click.option("--output-dir", type=click.Path(file_okay=False), default=None, help="Write reports here.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def local(
    ctx: click.Context,
    base_ref: str,
    head_ref: str,
    repo_dir: str,
    charts: tuple[str, ...],
    output_dir: str | None,
    as_json: bool,
) -> None:
    """Diff charts changed between two revisions of a local repository."""
    from chart_val.core.errors import ChartValError
    from chart_val.core.models import PRContext
    from chart_val.core.use_cases import wiring
    from chart_val.core.use_cases.diff_pr import run_diff

    settings = load_settings_or_exit(ctx)
    root = Path(repo_dir).resolve()
    context = PRContext(owner="local", repo=root.name, number=0, base_ref=base_ref, head_ref=head_ref)

    try:
        report = run_diff(context, wiring.local_services(settings, root), charts=charts or None)
    except ChartValError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    _emit(ctx, report, output_dir, as_json)


@click.command()
@click.argument("url")
@click.option("--post", is_flag=True, help="Publish check runs and the summary comment.")
@click.option("--chart", "charts", multiple=True, help="Only diff this chart (repeatable).")
@click.option("--output-dir", type=click.Path(file_okay=False), default=None, help="Write reports here.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def pr(
    ctx: click.Context,
    url: str,
    post: bool,
    charts: tuple[str, ...],
    output_dir: str | None,
    as_json: bool,
) -> None:
    """Diff a GitHub pull request: https://github.com/<owner>/<repo>/pull/<n>"""
    from chart_val.adapters.github import pulls
    from chart_val.core.errors import ChartValError
    from chart_val.core.models import parse_pr_url
    from chart_val.core.use_cases import wiring
    from chart_val.core.use_cases.diff_pr import run_diff

    try:
        owner, repo, number = parse_pr_url(url)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="URL") from e

    settings = load_settings_or_exit(ctx)

    try:
        context = pulls.fetch_pull_request(owner, repo, number)
        report = run_diff(
            context,
            wiring.github_services(settings, publish=post),
            charts=charts or None,
            publish=post,
        )
    except ChartValError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    _emit(ctx, report, output_dir, as_json)
