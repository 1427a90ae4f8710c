"""Status use case for inspecting and deleting repository indexes."""

import logging
from dataclasses import dataclass, field

from kindling.core.indexing.chunk_store import ChunkStore
from kindling.core.use_case_errors import format_error_message, log_use_case_error
from kindling.domain.entities import RepositoryIndexState

logger = logging.getLogger(__name__)


@dataclass
class RepositoryStatus:
    """Checkpoint of one repository together with its stored counts.

    Attributes:
        state: Decoded checkpoint, or None if it is missing or corrupt.
        repository: Repository identifier.
        total_chunks: Entries in the chunk list.
        processed_files: Paths in the processed-file set.
    """

    repository: str
    state: RepositoryIndexState | None = None
    total_chunks: int = 0
    processed_files: int = 0

    def to_dict(self) -> dict:
        return {
            "repository": self.repository,
            "status": self.state.to_dict() if self.state else None,
            "totalChunks": self.total_chunks,
            "processedFileCount": self.processed_files,
        }


@dataclass
class StatusResponse:
    """Response containing repository statuses.

    Attributes:
        statuses: Statuses, most recently processed first.
        success: Whether the status check succeeded.
        error: Error message if the status check failed.
    """

    statuses: list[RepositoryStatus] = field(default_factory=list)
    success: bool = True
    error: str | None = None

    @classmethod
    def create_success(cls, statuses: list[RepositoryStatus]) -> "StatusResponse":
        return cls(statuses=statuses)

    @classmethod
    def create_error(cls, message: str) -> "StatusResponse":
        return cls(success=False, error=message)


@dataclass
class DeleteResponse:
    """Response from deleting a repository's index.

    Attributes:
        repository: Repository that was targeted.
        deleted: Whether any data existed and was removed.
        success: Whether the deletion ran without error.
        error: Error message if the deletion failed.
    """

    repository: str
    deleted: bool = False
    success: bool = True
    error: str | None = None


class StatusUseCase:
    """Use case for listing, inspecting and deleting repository indexes."""

    def __init__(self, store: ChunkStore) -> None:
        """Initialize status use case.

        Args:
            store: Chunk store holding checkpoints and chunks.
        """
        self.store = store

    async def list_statuses(self) -> StatusResponse:
        """All readable checkpoints, most recently processed first.

        Corrupt checkpoints are skipped by the store and never fail the listing.

        Error handling contract:
            - KeyboardInterrupt/SystemExit are re-raised (user wants to exit)
            - All other exceptions are caught and converted to error responses
        """
        try:
            states = await self.store.list_statuses()
            states.sort(key=lambda s: s.last_processed_at, reverse=True)
            statuses = [await self._describe(s.repository, s) for s in states]
            return StatusResponse.create_success(statuses)
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:
            log_use_case_error(e, "status check")
            return StatusResponse.create_error(format_error_message(e, "status check"))

    async def get_status(self, repository: str) -> StatusResponse:
        """Status of one repository.

        A repository with chunks but an unreadable checkpoint is still reported,
        with ``state`` set to None. A repository with neither yields an empty
        response.
        """
        try:
            state = await self.store.get_status(repository)
            status = await self._describe(repository, state)
            if state is None and status.total_chunks == 0 and status.processed_files == 0:
                return StatusResponse.create_success([])
            return StatusResponse.create_success([status])
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:
            log_use_case_error(e, "status check")
            return StatusResponse.create_error(format_error_message(e, "status check"))

    async def delete_repository(self, repository: str) -> DeleteResponse:
        """Delete a repository's chunks, processed-file set and checkpoint."""
        try:
            deleted = await self.store.delete_repository(repository)
            return DeleteResponse(repository=repository, deleted=deleted)
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:
            log_use_case_error(e, "delete")
            return DeleteResponse(
                repository=repository,
                success=False,
                error=format_error_message(e, "delete"),
            )

    async def _describe(
        self, repository: str, state: RepositoryIndexState | None
    ) -> RepositoryStatus:
        return RepositoryStatus(
            repository=repository,
            state=state,
            total_chunks=await self.store.count_chunks(repository),
            processed_files=await self.store.processed_count(repository),
        )
