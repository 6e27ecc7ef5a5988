"""Terminal viewer for GitLab CI/CD pipelines."""

import asyncio
import logging
import os

import click
from dotenv import load_dotenv

from .config import GitLabConfig, RemoteInfo
from .exceptions import GitLabError, RepositoryError, describe_error
from .models.pipelines import PipelineDetails


def _configure_logging(level: str, log_file: str | None) -> None:
    # the interactive screen owns the terminal, so logs only go to a file
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _load_config(repo: str) -> GitLabConfig:
    config = GitLabConfig.from_env()
    if not config.url or not config.project_id:
        remote = RemoteInfo.from_repository(repo)
        if remote.is_valid():
            config.url = config.url or remote.url
            config.project_id = config.project_id or remote.project_id
    config.validate()
    return config


async def _fetch_details(config: GitLabConfig, sha: str) -> PipelineDetails | None:
    from .client import GitLabClient

    async with GitLabClient(config) as client:
        return await client.get_pipeline_details(config.project_id, sha)


@click.command()
@click.option("--gitlab-url", envvar="GITLAB_URL", help="GitLab instance URL")
@click.option("--gitlab-token", envvar="GITLAB_TOKEN", help="GitLab personal access token")
@click.option("--project", envvar="GITLAB_PROJECT", help="Project id or group/project path")
@click.option(
    "--repo",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Git repository to list commits from",
)
@click.option("--sha", "shas", multiple=True, help="Commit to show (repeatable)")
@click.option("--limit", default=200, show_default=True, help="Number of commits to list")
@click.option("--print", "print_mode", is_flag=True, help="Render one frame to stdout and exit")
@click.option("--width", default=100, show_default=True, help="Frame width for --print")
@click.option("--height", type=int, default=None, help="Frame height for --print")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write logs to this file")
def main(
    gitlab_url: str | None,
    gitlab_token: str | None,
    project: str | None,
    repo: str,
    shas: tuple[str, ...],
    limit: int,
    print_mode: bool,
    width: int,
    height: int | None,
    log_level: str,
    log_file: str | None,
) -> None:
    """Show GitLab pipelines for the commits of a git repository."""
    load_dotenv()
    _configure_logging(log_level.upper(), log_file)

    if gitlab_url:
        os.environ["GITLAB_URL"] = gitlab_url
    if gitlab_token:
        os.environ["GITLAB_TOKEN"] = gitlab_token
    if project:
        os.environ["GITLAB_PROJECT"] = project

    try:
        config = _load_config(repo)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    from .git import Commit, list_commits

    try:
        count = 1 if print_mode else limit
        commits = [Commit(sha, "") for sha in shas] or list_commits(repo, count)
    except RepositoryError as e:
        raise click.ClickException(str(e)) from e
    if not commits:
        raise click.ClickException("No commits to show")

    if print_mode:
        from .app import render_snapshot

        for index, commit in enumerate(commits):
            try:
                details = asyncio.run(_fetch_details(config, commit.sha))
            except GitLabError as e:
                raise click.ClickException(describe_error(e)) from e
            if index:
                click.echo()
            for line in render_snapshot(commit.sha, details, width, height):
                click.echo(line)
        return

    import curses

    from .app import PipelineApp, run_curses
    from .client import GitLabClient
    from .worker import FetchWorker

    with FetchWorker(lambda: GitLabClient(config), config.project_id) as worker:
        app = PipelineApp(
            commits,
            worker,
            cache_size=config.cache_size,
            poll_seconds=config.poll_seconds,
        )
        curses.wrapper(run_curses, app, config.tick_ms)


if __name__ == "__main__":
    main()
