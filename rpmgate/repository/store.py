"""
Filesystem side of the gateway.

Layout under the configured root:

    <root>/<repo>/rpms/<file>.rpm   uploaded artifacts
    <root>/cache/                   scratch space for the indexer
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from rpmgate.errors import BadRequestError, RepositoryConfigError, RepositoryIOError
from rpmgate.repository.paths import ARTIFACT_DIR, CACHE_DIR, PACKAGE_SUFFIX, is_plain_name


logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024

# Uploaded artifacts are world-readable
ARTIFACT_MODE = 0o644


class RepositoryStore:
    """
    Repository tree rooted at one directory.

    Directory creation is idempotent and safe to race with other request
    threads. Artifact writes go through a temp file in the same directory
    and an atomic rename, so a target is either fully written or untouched.
    """

    def __init__(self, root: Path, package_suffix: str = PACKAGE_SUFFIX):
        """
        Initialize repository store.

        Args:
            root: Root directory holding all repositories
            package_suffix: Required artifact file suffix, including the dot
        """
        self.root = Path(root)
        self.package_suffix = package_suffix

    def repository_path(self, repo_name: str) -> Path:
        """Path of a repository root. No I/O."""
        return self.root / repo_name

    def artifact_path(self, repo_name: str) -> Path:
        """Path of the directory holding a repository's artifacts. No I/O."""
        return self.repository_path(repo_name) / ARTIFACT_DIR

    def cache_path(self) -> Path:
        """Path of the indexer cache directory shared by all repositories."""
        return self.root / CACHE_DIR

    def file_path(self, repo_name: str, file_name: Optional[str]) -> Path:
        """
        Path of an artifact inside a repository.

        Args:
            repo_name: Repository name
            file_name: Artifact file name

        Returns:
            <root>/<repo_name>/rpms/<file_name>

        Raises:
            BadRequestError: If the file name is missing or does not end in
                the package suffix
        """
        if not file_name:
            raise BadRequestError("File name is required for artifact uploads")

        if not is_plain_name(file_name):
            raise BadRequestError(f"Invalid file name {file_name!r}")

        if Path(file_name).suffix != self.package_suffix:
            raise BadRequestError(
                f"Unexpected file name {file_name!r}, it must be a {self.package_suffix} file"
            )

        return self.artifact_path(repo_name) / file_name

    def ensure_repository_exists(self, repo_name: str) -> Path:
        """
        Create the repository root and its artifact directory if missing.

        Returns:
            Repository root path

        Raises:
            RepositoryConfigError: If a path component exists but is not a directory
            RepositoryIOError: If directory creation fails
        """
        repo_path = self.repository_path(repo_name)
        _ensure_dir(repo_path)
        _ensure_dir(self.artifact_path(repo_name))
        return repo_path

    def ensure_cache_exists(self) -> Path:
        """Create the indexer cache directory if missing."""
        cache_path = self.cache_path()
        _ensure_dir(cache_path)
        return cache_path

    def write_upload(self, path: Path, stream: BinaryIO) -> int:
        """
        Copy an upload stream into an artifact file.

        Args:
            path: Target artifact path (from file_path)
            stream: Readable binary stream with the request body

        Returns:
            Number of bytes written

        Raises:
            RepositoryIOError: If the file cannot be written completely
        """
        path = Path(path)
        try:
            temp_fd, temp_path = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp"
            )
        except OSError as e:
            raise RepositoryIOError(f"Failed to create file in {path.parent}: {e}") from e

        copied = 0
        try:
            with os.fdopen(temp_fd, 'wb') as f:
                os.fchmod(f.fileno(), ARTIFACT_MODE)
                while True:
                    chunk = stream.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    copied += len(chunk)
                f.flush()
                os.fsync(f.fileno())

            os.replace(temp_path, path)
        except OSError as e:
            _remove_quietly(temp_path)
            raise RepositoryIOError(f"Failed to write {path}: {e}") from e
        except Exception:
            _remove_quietly(temp_path)
            raise

        logger.debug(f"Read {copied} bytes to file {path}")
        return copied


def _ensure_dir(path: Path):
    try:
        path.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError) as e:
        # exist_ok only covers existing directories
        raise RepositoryConfigError(f"Path {path} must refer to a directory") from e
    except OSError as e:
        raise RepositoryIOError(f"Failed to create directory {path}: {e}") from e

    if not path.is_dir():
        raise RepositoryConfigError(f"Path {path} must refer to a directory")


def _remove_quietly(path: str):
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
