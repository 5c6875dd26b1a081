"""CLI entry point for the issue moderator."""

import asyncio
import sys
from pathlib import Path

import click
import structlog

from issue_moderator.config.settings import ModeratorSettings
from issue_moderator.engine.registry import build_registry
from issue_moderator.engine.runner import IssueOutcome, ModerationRunner
from issue_moderator.exceptions import ConfigurationError, IssueModeratorError
from issue_moderator.gateway.jira_rest import JiraRestGateway
from issue_moderator.utils.logging_config import RENDERERS, configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--config",
    default="moderator.yaml",
    help="Path to configuration file",
)
@click.option("--log-level", default="INFO", help="Logging level")
@click.option("--log-format", type=click.Choice(RENDERERS), default="json", help="Log output format")
@click.pass_context
def cli(ctx: click.Context, config: str, log_level: str, log_format: str) -> None:
    """issue-moderator: Rule-based moderation of Jira issues."""
    configure_logging(log_level, log_format)

    config_path = Path(config)
    if not config_path.exists():
        click.echo(f"Error: Configuration file not found: {config}", err=True)
        sys.exit(1)

    try:
        settings = ModeratorSettings.from_yaml(config_path)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    ctx.obj = {"settings": settings}


@cli.command()
@click.argument("key")
@click.pass_context
def moderate(ctx: click.Context, key: str) -> None:
    """Moderate a single issue by KEY (e.g. MC-12345)."""
    settings = ctx.obj["settings"]
    try:
        outcomes = asyncio.run(_moderate_issue(settings, key))
    except IssueModeratorError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("moderate_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    sys.exit(_report(outcomes))


@cli.command()
@click.option("--jql", default=None, help="Query selecting the issues; defaults to the configured query")
@click.pass_context
def run(ctx: click.Context, jql: str | None) -> None:
    """Moderate every issue matching a JQL query."""
    settings = ctx.obj["settings"]
    try:
        outcomes = asyncio.run(_run_pass(settings, jql or settings.default_jql()))
    except IssueModeratorError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("run_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    sys.exit(_report(outcomes))


def _create_gateway(settings: ModeratorSettings) -> JiraRestGateway:
    return JiraRestGateway(
        base_url=str(settings.jira.url),
        email=settings.jira.email,
        api_token=settings.jira.api_token.get_secret_value(),
        custom_fields=settings.custom_fields.to_field_ids(),
        max_connections=settings.jira.max_connections,
        timeout=settings.jira.timeout,
    )


def _create_runner(settings: ModeratorSettings, gateway: JiraRestGateway) -> ModerationRunner:
    return ModerationRunner(
        gateway,
        build_registry(settings, gateway),
        max_concurrent_issues=settings.runner.max_concurrent_issues,
        page_size=settings.issues.max_results,
    )


async def _moderate_issue(settings: ModeratorSettings, key: str) -> list[IssueOutcome]:
    """Fetch and moderate one issue.

    Args:
        settings: Moderator settings
        key: Issue key
    """
    log.info("moderating_single_issue", issue_key=key)
    async with _create_gateway(settings) as gateway:
        return [await _create_runner(settings, gateway).moderate_key(key)]


async def _run_pass(settings: ModeratorSettings, jql: str) -> list[IssueOutcome]:
    """Run one moderation pass over all matching issues.

    Args:
        settings: Moderator settings
        jql: Issue query
    """
    async with _create_gateway(settings) as gateway:
        return await _create_runner(settings, gateway).run(jql)


def _report(outcomes: list[IssueOutcome]) -> int:
    """Print a summary and return the process exit code."""
    failed = [outcome for outcome in outcomes if outcome.failed]
    for outcome in failed:
        click.echo(f"❌ {outcome.issue_key}: moderation incomplete", err=True)
    click.echo(f"✅ {len(outcomes) - len(failed)} of {len(outcomes)} issue(s) moderated")
    return 1 if failed else 0


if __name__ == "__main__":
    cli()
