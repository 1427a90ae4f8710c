"""Checkpointed repository indexing job.

Orchestrates Source Provider -> SemanticChunker -> EmbeddingClient ->
ChunkStore across a whole repository while maintaining a durable checkpoint
so an interrupted run can resume where it stopped.

Pipeline phases:
1. Resolve the entry mode from the request and the stored checkpoint
2. Plan: read the head commit, build the work list, clear or remove stale data
3. Process files, checkpointing every N files, after errors and before exit
4. Finalize: mark completed, or pause when the time budget runs out

Entry mode resolution:
- full: always a fresh run
- resume: continue an in-progress or failed run; no checkpoint runs full;
  a completed checkpoint means there is nothing to do
- diff: needs a completed checkpoint with a commit; in-progress or failed runs
  resume; without a recorded commit it falls back to full
"""

import logging
import time
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from kindling.core.chunking.semantic_chunker import SemanticChunker
from kindling.core.embedding.embedding_client import EmbeddingClient
from kindling.core.indexing.budget import TimeBudget
from kindling.core.indexing.chunk_store import ChunkStore
from kindling.core.indexing.file_filter import FileFilterService
from kindling.core.indexing.types import (
    CompletedEvent,
    ErrorEvent,
    IndexEvent,
    IndexRequest,
    IndexResponse,
    LogEvent,
    PausedEvent,
    ProgressEvent,
)
from kindling.core.use_case_errors import (
    ConfigurationError,
    format_error_message,
    is_fatal,
    log_use_case_error,
)
from kindling.domain.config import IndexConfig
from kindling.domain.entities import IndexMode, IndexStatus, RepositoryIndexState
from kindling.ports.progress import ProgressCallback
from kindling.ports.source import DiffUnavailableError, FileChange, SourceProvider

logger = logging.getLogger(__name__)


@dataclass
class _Plan:
    """Work list for one run.

    Attributes:
        state: Checkpoint owned by the run.
        files: Indexable paths to process, sorted.
        processed: Paths already in the processed-file set.
    """

    state: RepositoryIndexState
    files: list[str]
    processed: set[str] = field(default_factory=set)


@dataclass
class _UpToDate:
    message: str
    commit_sha: str | None


@dataclass
class _RunContext:
    request: IndexRequest
    started: float = field(default_factory=time.monotonic)
    existing: RepositoryIndexState | None = None
    state: RepositoryIndexState | None = None
    setup_done: bool = False
    chunks_indexed: int = 0
    files_failed: int = 0


def _split_changes(
    changes: list[FileChange], file_filter: FileFilterService
) -> tuple[list[str], list[str]]:
    """Split a diff into (paths to re-index, paths whose chunks must go)."""
    changed = []
    gone = []
    for change in changes:
        if change.status == "deleted":
            gone.append(change.path)
        else:
            changed.append(change.path)
            if change.status == "renamed" and change.previous_path:
                gone.append(change.previous_path)
    return file_filter.filter_paths(changed), file_filter.filter_paths(gone)


class IndexingJob:
    """Indexes one repository per run with resumable checkpoints.

    Collaborators are injected; the job holds no global state and several jobs
    for different repositories can share the same collaborators.
    """

    def __init__(
        self,
        source: SourceProvider,
        chunker: SemanticChunker,
        embedding_client: EmbeddingClient,
        store: ChunkStore,
        config: IndexConfig | None = None,
    ) -> None:
        """Initialize indexing job.

        Args:
            source: Source provider for file listing, content and diffs.
            chunker: Semantic chunker for splitting files.
            embedding_client: Client for embedding chunks.
            store: Chunk store for chunks, ledger and checkpoint.
            config: Indexing configuration.
        """
        self.source = source
        self.chunker = chunker
        self.embedding_client = embedding_client
        self.store = store
        self.config = config or IndexConfig()
        self.file_filter = FileFilterService(self.config)

    def new_budget(self) -> TimeBudget:
        """Budget for a run started now, from configuration."""
        return TimeBudget(self.config.time_budget_seconds, self.config.safety_margin_seconds)

    async def stream(
        self, request: IndexRequest, budget: TimeBudget | None = None
    ) -> AsyncIterator[IndexEvent]:
        """Run the job, yielding events as it goes.

        Setup failures and fatal errors mark the checkpoint failed and yield an
        ErrorEvent. Configuration errors are re-raised after that so callers
        cannot mistake them for a transient failure.

        Args:
            request: Repository, mode and branch.
            budget: Time budget; defaults to one built from configuration.

        Yields:
            LogEvent, ProgressEvent, PausedEvent, CompletedEvent or ErrorEvent.
        """
        budget = budget or self.new_budget()
        run = _RunContext(request=request)
        try:
            async for event in self._run(run, budget):
                yield event
        except Exception as e:
            log_use_case_error(e, "indexing")
            message = format_error_message(e, "indexing")
            if not run.setup_done:
                message = f"Repository error: {message}"
            await self._mark_failed(run, message)
            yield ErrorEvent(message)
            if is_fatal(e):
                raise

    async def execute(
        self,
        request: IndexRequest,
        progress: ProgressCallback | None = None,
        budget: TimeBudget | None = None,
    ) -> IndexResponse:
        """Run the job to the end and summarize it.

        Args:
            request: Repository, mode and branch.
            progress: Optional progress callback for reporting progress.
            budget: Time budget; defaults to one built from configuration.

        Returns:
            IndexResponse describing the outcome.
        """
        logger.info(f"Starting indexing for {request.repository} (mode: {request.mode.value})")
        response = IndexResponse(repository=request.repository, outcome="failed")
        started = False

        try:
            async for event in self.stream(request, budget):
                if isinstance(event, ProgressEvent):
                    response.files_processed = event.processed_files
                    response.total_files = event.total_files
                    if progress is not None:
                        if not started:
                            progress.on_start(event.total_files, f"Indexing {request.repository}")
                            started = True
                        progress.on_progress(event.processed_files, event.current_path)
                elif isinstance(event, LogEvent) and event.level == "error":
                    response.errors.append(event.message)
                elif isinstance(event, PausedEvent):
                    response.outcome = "paused"
                    response.resume_token = event.resume_token
                elif isinstance(event, CompletedEvent):
                    response.outcome = "up_to_date" if event.up_to_date else "completed"
                    response.total_chunks = event.total_chunks
                    response.chunks_indexed = event.chunks_indexed
                    response.commit_sha = event.commit_sha
                elif isinstance(event, ErrorEvent):
                    response.outcome = "failed"
                    response.success = False
                    response.error = event.message

        except (KeyboardInterrupt, SystemExit):
            logger.info("Indexing interrupted by user")
            raise

        except Exception as e:
            return IndexResponse.create_error(
                request.repository, format_error_message(e, "indexing")
            )

        finally:
            if progress is not None and started:
                progress.on_complete()

        return response

    async def _run(self, run: _RunContext, budget: TimeBudget) -> AsyncIterator[IndexEvent]:
        request = run.request
        repository = request.repository
        existing = await self.store.get_status(repository)
        run.existing = existing
        mode = self._resolve_mode(request.mode, existing)

        if mode is None:
            commit = existing.last_commit_sha if existing else None
            yield LogEvent("Repository already fully embedded", "success")
            yield self._completed(
                run, 0, commit, await self.store.count_chunks(repository), up_to_date=True
            )
            return

        if mode != request.mode:
            yield LogEvent(f"Running {mode.value} index instead of {request.mode.value}", "warning")

        yield LogEvent(f"Starting {mode.value} index of {repository}")

        if mode is IndexMode.FULL:
            plan = await self._plan_full(run)
        else:
            assert existing is not None
            try:
                if mode is IndexMode.DIFF:
                    outcome = await self._plan_diff(run, existing)
                else:
                    outcome = await self._plan_resume(run, existing)
            except DiffUnavailableError as e:
                logger.warning(f"Diff unavailable, falling back to full index: {e}")
                yield LogEvent(f"{e}. Running full index instead", "warning")
                outcome = await self._plan_full(run)
            if isinstance(outcome, _UpToDate):
                yield LogEvent(outcome.message, "success")
                yield self._completed(
                    run,
                    0,
                    outcome.commit_sha,
                    await self.store.count_chunks(repository),
                    up_to_date=True,
                )
                return
            plan = outcome

        run.state = plan.state
        run.setup_done = True
        async for event in self._process(run, plan, budget):
            yield event

    def _resolve_mode(
        self, requested: IndexMode, existing: RepositoryIndexState | None
    ) -> IndexMode | None:
        """Pick the mode to run, or None when there is nothing to do."""
        if requested is IndexMode.FULL:
            return IndexMode.FULL

        if requested is IndexMode.RESUME:
            if existing is None:
                logger.info("No checkpoint to resume, running full index")
                return IndexMode.FULL
            if existing.status is IndexStatus.COMPLETED:
                return None
            return IndexMode.RESUME

        # Diff
        if existing is not None and existing.status is not IndexStatus.COMPLETED:
            logger.info(f"Previous run is {existing.status.value}, resuming it")
            return IndexMode.RESUME
        if existing is None or not existing.last_commit_sha:
            logger.info("No completed index with a commit to diff against, running full index")
            return IndexMode.FULL
        return IndexMode.DIFF

    async def _plan_full(self, run: _RunContext) -> _Plan:
        request = run.request
        repository = request.repository
        head = await self.source.get_latest_commit(repository, request.branch)
        files = self.file_filter.filter_paths(await self.source.list_files(repository, head))

        await self.store.clear_processed(repository)
        await self.store.clear_chunks(repository)

        state = RepositoryIndexState(
            repository=repository,
            status=IndexStatus.IN_PROGRESS,
            total_files=len(files),
            job_id=uuid.uuid4().hex,
            mode=IndexMode.FULL.value,
            target_commit_sha=head,
        )
        run.state = state
        await self._save(state)
        logger.info(f"Full index of {repository} at {head[:12]}: {len(files)} files")
        return _Plan(state=state, files=files)

    async def _plan_diff(
        self, run: _RunContext, existing: RepositoryIndexState
    ) -> _Plan | _UpToDate:
        request = run.request
        repository = request.repository
        base = existing.last_commit_sha
        assert base is not None
        head = await self.source.get_latest_commit(repository, request.branch)
        if head == base:
            return _UpToDate(f"No new commits since {base[:12]}", base)

        changed, gone = _split_changes(
            await self.source.diff_commits(repository, base, head), self.file_filter
        )
        if not changed and not gone:
            return _UpToDate(f"No indexable changes between {base[:12]} and {head[:12]}", base)

        state = RepositoryIndexState(
            repository=repository,
            status=IndexStatus.IN_PROGRESS,
            total_files=len(changed),
            last_commit_sha=base,
            job_id=uuid.uuid4().hex,
            mode=IndexMode.DIFF.value,
            target_commit_sha=head,
            base_commit_sha=base,
        )
        run.state = state
        await self._save(state)

        await self.store.clear_processed(repository)
        removed = await self.store.remove_chunks_for_paths(repository, set(changed) | set(gone))
        logger.info(
            f"Diff index of {repository} {base[:12]}..{head[:12]}: "
            f"{len(changed)} changed, {len(gone)} removed, {removed} stale chunks dropped"
        )
        return _Plan(state=state, files=changed)

    async def _plan_resume(self, run: _RunContext, existing: RepositoryIndexState) -> _Plan:
        repository = run.request.repository
        state = existing
        run.state = state
        processed = await self.store.processed_paths(repository)

        if state.mode == IndexMode.DIFF.value and state.base_commit_sha and state.target_commit_sha:
            changed, gone = _split_changes(
                await self.source.diff_commits(
                    repository, state.base_commit_sha, state.target_commit_sha
                ),
                self.file_filter,
            )
            # Chunks of files not yet re-indexed may be stale or partial
            await self.store.remove_chunks_for_paths(
                repository, (set(changed) - processed) | set(gone)
            )
            files = changed
        else:
            if not state.target_commit_sha:
                state.target_commit_sha = await self.source.get_latest_commit(
                    repository, run.request.branch
                )
            state.mode = state.mode or IndexMode.FULL.value
            files = self.file_filter.filter_paths(
                await self.source.list_files(repository, state.target_commit_sha)
            )

        state.status = IndexStatus.IN_PROGRESS
        state.total_files = len(files)
        state.job_id = state.job_id or uuid.uuid4().hex
        logger.info(
            f"Resuming {state.mode} index of {repository}: "
            f"{len(processed & set(files))}/{len(files)} files already processed"
        )
        return _Plan(state=state, files=files, processed=processed)

    async def _process(
        self, run: _RunContext, plan: _Plan, budget: TimeBudget
    ) -> AsyncIterator[IndexEvent]:
        repository = run.request.repository
        state = plan.state
        total = len(plan.files)
        done = len(plan.processed & set(plan.files))
        state.update_progress(done)
        await self._save(state)

        pending = total - done
        yield LogEvent(f"Found {total} files to index ({pending} remaining)")
        yield ProgressEvent(done, total, state.progress)

        since_checkpoint = 0
        for path in plan.files:
            if path in plan.processed:
                continue

            if budget.exceeded():
                state.current_path = None
                await self._save(state)
                logger.info(f"Time budget reached for {repository} after {done}/{total} files")
                yield LogEvent(
                    f"Time budget reached after {done}/{total} files; progress saved",
                    "warning",
                )
                yield PausedEvent(
                    resume_token=state.job_id or "", processed_files=done, total_files=total
                )
                return

            state.current_path = path
            try:
                run.chunks_indexed += await self._process_file(
                    repository, path, state.target_commit_sha
                )
            except ConfigurationError:
                raise
            except Exception as e:
                message = f"Error processing {path}: {e}"
                logger.error(message)
                run.files_failed += 1
                state.errors.append(message)
                await self._save(state)
                since_checkpoint = 0
                yield LogEvent(message, "error")
                continue

            done += 1
            state.update_progress(done)
            since_checkpoint += 1
            if since_checkpoint >= self.config.checkpoint_interval:
                await self._save(state)
                since_checkpoint = 0
            yield ProgressEvent(done, total, state.progress, path)

        commit = state.target_commit_sha or state.last_commit_sha or ""
        state.mark_completed(commit)
        await self._save(state)
        logger.info(f"Completed indexing {repository} at {commit[:12]}")
        yield LogEvent(f"Indexed {done}/{total} files", "success")
        yield self._completed(run, total, commit, await self.store.count_chunks(repository))

    async def _process_file(self, repository: str, path: str, ref: str | None) -> int:
        """Chunk, embed and store one file.

        Returns:
            Number of chunks stored.
        """
        raw = await self.source.get_file_content(repository, path, ref)
        content = raw.decode("utf-8", errors="replace")
        if not content.strip():
            await self.store.mark_processed(repository, path)
            return 0

        chunks = self.chunker.chunk(repository, path, content)
        embedded = await self.embedding_client.embed(chunks)
        await self.store.append_chunks(repository, embedded)
        await self.store.mark_processed(repository, path)
        logger.debug(f"Indexed {path}: {len(embedded)} chunks")
        return len(embedded)

    def _completed(
        self,
        run: _RunContext,
        total_files: int,
        commit_sha: str | None,
        total_chunks: int,
        up_to_date: bool = False,
    ) -> CompletedEvent:
        return CompletedEvent(
            total_chunks=total_chunks,
            total_files=total_files,
            duration_seconds=time.monotonic() - run.started,
            commit_sha=commit_sha,
            chunks_indexed=run.chunks_indexed,
            files_failed=run.files_failed,
            up_to_date=up_to_date,
        )

    async def _save(self, state: RepositoryIndexState) -> None:
        """Persist the checkpoint with the TTL for its status."""
        if state.status is IndexStatus.COMPLETED:
            ttl = self.config.completed_ttl_seconds
        else:
            ttl = self.config.in_progress_ttl_seconds
        state.last_processed_at = int(time.time() * 1000)
        await self.store.set_status(state, ttl_seconds=ttl)

    async def _mark_failed(self, run: _RunContext, message: str) -> None:
        # Keep an existing checkpoint so its commit and ledger stay resumable
        state = run.state or run.existing
        if state is None:
            state = RepositoryIndexState(
                repository=run.request.repository, status=IndexStatus.IN_PROGRESS
            )
        run.state = state
        state.mark_failed(message)
        try:
            await self._save(state)
        except Exception:
            logger.exception(f"Could not persist failed status for {run.request.repository}")
