"""
Refresh coordinator - runs the external indexer one invocation at a time.

Every metadata refresh, for any repository, goes through a single lock owned
by the coordinator. A refresh request that arrives while another is running
blocks its own thread until the lock is free, then runs its own invocation.
There is no timeout and no cancellation.
"""
import logging
import subprocess
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from rpmgate.errors import IndexerError
from rpmgate.repository.store import RepositoryStore


logger = logging.getLogger(__name__)

# Characters of indexer output kept for diagnostics
OUTPUT_TAIL_CHARS = 4000


@dataclass
class RefreshOutcome:
    """Result of one metadata refresh."""
    success: bool
    repo_name: str

    # Failure fields
    returncode: Optional[int] = None
    error: Optional[str] = None
    spawn_error: Optional[str] = None

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    output: str = ""

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def raise_for_failure(self):
        """Raise IndexerError if the indexer failed to start or exited non-zero."""
        if self.success:
            return
        raise IndexerError(
            self.error or f"Metadata refresh failed for repo {self.repo_name}",
            returncode=self.returncode,
            spawn_error=self.spawn_error
        )


class RefreshCoordinator:
    """
    Serializes external indexer runs across all repositories.

    The indexer is invoked as:

        <indexer...> --cachedir=<root>/cache --update <root>/<repo>
    """

    def __init__(
        self,
        store: RepositoryStore,
        indexer_command: List[str],
        lock: Optional[threading.Lock] = None
    ):
        """
        Initialize refresh coordinator.

        Args:
            store: Repository store sharing the same root
            indexer_command: Indexer executable and any leading arguments
            lock: Lock guarding indexer runs (default: a new lock for this server)
        """
        if not indexer_command:
            raise ValueError("Indexer command must not be empty")

        self.store = store
        self.indexer_command = list(indexer_command)
        self.lock = lock if lock is not None else threading.Lock()

    def cache_argument(self) -> str:
        """Cache directory flag passed to the indexer. No I/O."""
        return f"--cachedir={self.store.cache_path()}"

    def build_command(self, repo_name: str) -> List[str]:
        """Full indexer argument list for a repository."""
        return [
            *self.indexer_command,
            self.cache_argument(),
            "--update",
            str(self.store.repository_path(repo_name)),
        ]

    def refresh(self, repo_name: str) -> RefreshOutcome:
        """
        Rebuild metadata for a repository.

        Blocks until no other refresh is running, then runs the indexer and
        waits for it to exit.

        Args:
            repo_name: Repository name

        Returns:
            RefreshOutcome; success only when the indexer exited with 0

        Raises:
            RepositoryConfigError: If the repository tree is blocked by a non-directory
            RepositoryIOError: If the repository or cache directory cannot be created
        """
        self.store.ensure_repository_exists(repo_name)
        self.store.ensure_cache_exists()

        command = self.build_command(repo_name)

        with self.lock:
            started_at = datetime.utcnow()
            logger.debug(f"Rebuilding metadata for repo {self.store.repository_path(repo_name)}")

            try:
                result = subprocess.run(
                    command,
                    stdin=subprocess.DEVNULL,
                    capture_output=True,
                    text=True,
                    errors="replace"
                )
            except OSError as e:
                completed_at = datetime.utcnow()
                logger.error(f"Failed to start indexer {command[0]} for repo {repo_name}: {e}")
                return RefreshOutcome(
                    success=False,
                    repo_name=repo_name,
                    error=f"Failed to start indexer: {e}",
                    spawn_error=str(e),
                    started_at=started_at,
                    completed_at=completed_at
                )

            completed_at = datetime.utcnow()

        output = _tail((result.stdout or "") + (result.stderr or ""))

        if result.returncode != 0:
            logger.error(
                f"Indexer exited with code {result.returncode} for repo {repo_name}: "
                f"{_tail(result.stderr or '')}"
            )
            return RefreshOutcome(
                success=False,
                repo_name=repo_name,
                returncode=result.returncode,
                error=f"Indexer exited with code {result.returncode}",
                started_at=started_at,
                completed_at=completed_at,
                output=output
            )

        outcome = RefreshOutcome(
            success=True,
            repo_name=repo_name,
            returncode=0,
            started_at=started_at,
            completed_at=completed_at,
            output=output
        )
        logger.info(f"Metadata for repo {repo_name} rebuilt in {outcome.duration_seconds:.2f}s")
        return outcome


def _tail(text: str) -> str:
    return text[-OUTPUT_TAIL_CHARS:]
