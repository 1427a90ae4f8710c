"""Kindling CLI entrypoint.

Command-line interface for indexing repositories into embeddings and
searching them.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from contextlib import AsyncExitStack
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import click

from kindling.core.errors import (
    KindlingCliError,
    index_failed_error,
    repository_not_found_error,
)
from kindling.core.use_case_errors import ConfigurationError, KindlingError
from kindling.domain.exceptions import KindlingDomainError
from kindling.version import __version__

if TYPE_CHECKING:
    from kindling.core.indexing.types import IndexRequest, IndexResponse
    from kindling.core.status.status_usecase import RepositoryStatus
    from kindling.domain.config import KindlingConfig
    from kindling.domain.entities import Query, SearchResultSet

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
KINDLING_DIR = ".kindling"


def handle_cli_errors(command_name: str):
    """Decorator to handle common CLI errors.

    KindlingCliError and click's own control-flow exceptions propagate
    unchanged. Domain and configuration errors become KindlingCliError with a
    hint; anything else is reported with a traceback in verbose mode.

    Args:
        command_name: Name of the command for error messages.

    Returns:
        Decorated function with error handling.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (KindlingCliError, click.exceptions.Exit, click.Abort):
                raise
            except KindlingDomainError as e:
                raise KindlingCliError(e.message, hint=e.hint) from e
            except ConfigurationError as e:
                raise KindlingCliError(
                    e.message,
                    hint=f"Check {KINDLING_DIR}/config.toml and the environment variables it names",
                ) from e
            except KindlingError as e:
                raise KindlingCliError(e.message) from e
            except ValueError as e:
                raise KindlingCliError(f"Invalid {command_name} input: {e}") from e
            except RuntimeError as e:
                raise KindlingCliError(str(e), hint="Run with --verbose for more details") from e
            except Exception as e:
                ctx = click.get_current_context()
                if ctx.obj.get("verbose", False):
                    import traceback

                    traceback.print_exc()
                raise KindlingCliError(
                    f"Unexpected error in {command_name}: {e}",
                    hint="Run with --verbose for more details",
                ) from e

        return wrapper

    return decorator


def _kindling_dir() -> Path:
    return Path.cwd() / KINDLING_DIR


def _load_config(kindling_dir: Path) -> KindlingConfig:
    """Load configuration for the given .kindling directory."""
    from kindling.adapters.factory import ConfigFactory

    return ConfigFactory().create_config_provider().load(kindling_dir)


@click.group()
@click.version_option(version=__version__, prog_name="kindling")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-essential output.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool) -> None:
    """Kindling - semantic code search over embedded repositories.

    Chunks repository files along code boundaries, embeds them and searches
    them by cosine similarity.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


# Index


async def _run_index(
    config: KindlingConfig,
    kindling_dir: Path,
    request: IndexRequest,
    json_output: bool,
    quiet: bool,
) -> IndexResponse | None:
    """Run one indexing job; returns None in JSON mode after streaming events."""
    from kindling.adapters.factory import (
        EmbeddingFactory,
        SourceFactory,
        StoreFactory,
        UseCaseFactory,
    )
    from kindling.core.indexing.types import ErrorEvent
    from kindling.core.progress import progress_context

    async with AsyncExitStack() as stack:
        kv = StoreFactory().create_kv_store(config.store, kindling_dir)
        stack.push_async_callback(kv.aclose)
        source = SourceFactory().create_source(config.source)
        stack.push_async_callback(source.aclose)
        embedding_client = EmbeddingFactory().create_embedding_client(config.embedding)
        stack.push_async_callback(embedding_client.provider.aclose)

        job = UseCaseFactory().create_indexing_job(config, kv, source, embedding_client)

        if json_output:
            failure = None
            async for event in job.stream(request):
                click.echo(json.dumps(event.to_dict()))
                if isinstance(event, ErrorEvent):
                    failure = event.message
            if failure is not None:
                raise KindlingCliError(f"Indexing {request.repository} failed: {failure}")
            return None

        with progress_context(quiet_mode=quiet) as progress:
            return await job.execute(request, progress=progress)


def _print_index_summary(response: IndexResponse, verbose: bool) -> None:
    repo = response.repository
    if response.outcome == "up_to_date":
        click.echo(f"✓ {repo} is already up to date")
        return

    if response.outcome == "paused":
        click.echo(
            f"{click.style('⏸ Paused', fg='yellow')}: time budget reached after "
            f"{response.files_processed}/{response.total_files} files"
        )
        click.echo(f"  Resume token: {response.resume_token}")
        click.echo(f"  Resume with: kindling index {repo} --mode resume")
    else:
        sha = (response.commit_sha or "")[:12]
        click.echo(
            f"✓ Indexed {response.files_processed}/{response.total_files} files of {repo}"
            + (f" at {sha}" if sha else "")
        )
        click.echo(
            f"  Chunks written: {response.chunks_indexed} "
            f"(total stored: {response.total_chunks})"
        )

    if response.errors:
        click.echo(
            click.style(f"⚠ {len(response.errors)} files failed", fg="yellow"),
            err=True,
        )
        shown = response.errors if verbose else response.errors[:5]
        for message in shown:
            click.echo(f"  {message}", err=True)
        if len(shown) < len(response.errors):
            click.echo(f"  ... and {len(response.errors) - len(shown)} more", err=True)


@cli.command()
@click.argument("repository")
@click.option(
    "--mode",
    type=click.Choice(["full", "resume", "diff"]),
    default="full",
    show_default=True,
    help="full re-indexes, resume continues a paused run, diff indexes new commits.",
)
@click.option("--branch", "-b", type=str, default=None, help="Branch to index.")
@click.option("--json", "json_output", is_flag=True, help="Stream events as JSON lines.")
@click.pass_context
@handle_cli_errors("index")
def index(
    ctx: click.Context,
    repository: str,
    mode: str,
    branch: str | None,
    json_output: bool,
) -> None:
    """Index REPOSITORY (owner/name) into embeddings.

    Long runs stop before the time budget and save a checkpoint; run again
    with --mode resume to continue.
    """
    from kindling.core.indexing.types import IndexRequest
    from kindling.domain.entities import IndexMode

    kindling_dir = _kindling_dir()
    config = _load_config(kindling_dir)
    request = IndexRequest(
        repository=repository,
        mode=IndexMode(mode),
        branch=branch or config.source.branch,
    )
    quiet = ctx.obj.get("quiet", False)

    response = asyncio.run(_run_index(config, kindling_dir, request, json_output, quiet))
    if response is None:
        return
    if not response.success:
        index_failed_error(repository, response.error or "unknown error")
    if not quiet or response.errors:
        _print_index_summary(response, ctx.obj.get("verbose", False))


# Search


async def _run_search(
    config: KindlingConfig,
    kindling_dir: Path,
    query: Query,
    threshold: float | None,
) -> SearchResultSet:
    from kindling.adapters.factory import EmbeddingFactory, StoreFactory, UseCaseFactory

    async with AsyncExitStack() as stack:
        kv = StoreFactory().create_kv_store(config.store, kindling_dir)
        stack.push_async_callback(kv.aclose)
        embedding_client = EmbeddingFactory().create_embedding_client(config.embedding)
        stack.push_async_callback(embedding_client.provider.aclose)

        engine = UseCaseFactory().create_search_engine(config, kv, embedding_client)
        return await engine.search(query, threshold=threshold)


@cli.command()
@click.argument("repository")
@click.argument("query")
@click.option("-k", "--limit", type=int, default=None, help="Number of results (max 50).")
@click.option(
    "--filter",
    "path_filter",
    type=str,
    default=None,
    help="Only search paths matching a glob, e.g. 'src/**/*.ts'.",
)
@click.option(
    "--threshold",
    type=click.FloatRange(-1.0, 1.0),
    default=None,
    help="Minimum similarity (exclusive). Defaults to search.similarity_threshold.",
)
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON.")
@click.pass_context
@handle_cli_errors("search")
def search(
    ctx: click.Context,
    repository: str,
    query: str,
    limit: int | None,
    path_filter: str | None,
    threshold: float | None,
    json_output: bool,
) -> None:
    """Search REPOSITORY for code matching QUERY."""
    from kindling.domain.entities import Query
    from kindling.domain.value_objects import PathFilter

    kindling_dir = _kindling_dir()
    config = _load_config(kindling_dir)
    search_query = Query(
        repository=repository,
        text=query,
        limit=limit,
        path_filter=PathFilter(path_filter) if path_filter else None,
    )

    result_set = asyncio.run(_run_search(config, kindling_dir, search_query, threshold))

    if json_output:
        click.echo(json.dumps(result_set.to_dict(), indent=2))
        return

    if not result_set.results:
        click.echo("No results found.")
        return

    for rank, result in enumerate(result_set.results, 1):
        meta = result.chunk.metadata
        label = meta.type.value + (f" {meta.name}" if meta.name else "")
        click.echo(
            f"{rank}. {click.style(result.chunk.path, fg='magenta')}"
            f":{meta.start_line}-{meta.end_line} "
            f"{click.style(f'[{label}]', fg='cyan')} score {result.score:.3f}"
        )
        if not ctx.obj.get("quiet", False):
            for line in result.chunk.content.splitlines()[:3]:
                click.echo(click.style(f"    {line}", dim=True))


# Status


def _format_status(status: RepositoryStatus) -> list[str]:
    lines = [click.style(status.repository, bold=True)]
    state = status.state
    if state is None:
        lines.append("  Status: unknown (no readable checkpoint)")
    else:
        colour = {"completed": "green", "failed": "red"}.get(state.status.value, "yellow")
        lines.append(f"  Status: {click.style(state.status.value, fg=colour)} ({state.progress}%)")
        if state.total_files is not None:
            lines.append(f"  Files: {state.processed_files}/{state.total_files}")
        if state.last_commit_sha:
            lines.append(f"  Commit: {state.last_commit_sha[:12]}")
        updated = datetime.fromtimestamp(state.last_processed_at / 1000)
        lines.append(f"  Updated: {updated:%Y-%m-%d %H:%M:%S}")
        if state.errors:
            lines.append(f"  Errors: {len(state.errors)} (latest: {state.errors[-1]})")
    lines.append(f"  Chunks: {status.total_chunks}")
    return lines


async def _run_status(
    config: KindlingConfig, kindling_dir: Path, repository: str | None
) -> list[RepositoryStatus]:
    from kindling.adapters.factory import StoreFactory, UseCaseFactory

    async with AsyncExitStack() as stack:
        kv = StoreFactory().create_kv_store(config.store, kindling_dir)
        stack.push_async_callback(kv.aclose)
        use_case = UseCaseFactory().create_status_usecase(kv)
        if repository is None:
            response = await use_case.list_statuses()
        else:
            response = await use_case.get_status(repository)

    if not response.success:
        raise KindlingCliError(f"Failed to get status: {response.error}")
    return response.statuses


@cli.command()
@click.argument("repository", required=False)
@click.option("--json", "json_output", is_flag=True, help="Output status as JSON.")
@click.pass_context
@handle_cli_errors("status")
def status(ctx: click.Context, repository: str | None, json_output: bool) -> None:
    """Show indexing status for REPOSITORY, or for every repository."""
    kindling_dir = _kindling_dir()
    config = _load_config(kindling_dir)

    statuses = asyncio.run(_run_status(config, kindling_dir, repository))

    if json_output:
        click.echo(json.dumps([s.to_dict() for s in statuses], indent=2))
        return

    if not statuses:
        if repository is not None:
            repository_not_found_error(repository)
        click.echo("No indexed repositories.")
        return

    for i, repo_status in enumerate(statuses):
        if i:
            click.echo()
        for line in _format_status(repo_status):
            click.echo(line)


# Delete


async def _run_delete(config: KindlingConfig, kindling_dir: Path, repository: str) -> bool:
    from kindling.adapters.factory import StoreFactory, UseCaseFactory

    async with AsyncExitStack() as stack:
        kv = StoreFactory().create_kv_store(config.store, kindling_dir)
        stack.push_async_callback(kv.aclose)
        response = await UseCaseFactory().create_status_usecase(kv).delete_repository(repository)

    if not response.success:
        raise KindlingCliError(f"Failed to delete {repository}: {response.error}")
    return response.deleted


@cli.command()
@click.argument("repository")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
@handle_cli_errors("delete")
def delete(ctx: click.Context, repository: str, yes: bool) -> None:
    """Delete the chunks, processed files and checkpoint of REPOSITORY."""
    if not yes:
        click.confirm(f"Delete the index for {repository}?", abort=True)

    kindling_dir = _kindling_dir()
    config = _load_config(kindling_dir)

    if asyncio.run(_run_delete(config, kindling_dir, repository)):
        click.echo(f"✓ Deleted index for {repository}")
    else:
        click.echo(f"Nothing to delete for {repository}")


if __name__ == "__main__":
    cli()
