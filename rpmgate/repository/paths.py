"""
Request path resolution.

Translates the path of an HTTP request into a RepoRequest. Pure: no
filesystem access happens here.
"""
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import unquote, urlsplit

from rpmgate.errors import BadRequestError


PACKAGE_SUFFIX = ".rpm"
ARTIFACT_DIR = "rpms"
CACHE_DIR = "cache"

# Segments never kept, whatever else the path contains
_SKIPPED_SEGMENTS = {"", ".", ".."}


@dataclass(frozen=True)
class RepoRequest:
    """Parsed request intent: a repository, optionally one file inside it."""
    repo_name: str
    file_name: Optional[str] = None

    @property
    def is_repository_request(self) -> bool:
        """True for repository-level operations (metadata refresh)."""
        return self.file_name is None


def is_plain_name(segment: str) -> bool:
    """Check that a path segment is a plain name that stays inside its parent."""
    return segment not in _SKIPPED_SEGMENTS and "/" not in segment


def path_segments(path: str) -> List[str]:
    """
    Split a percent-encoded path into its plain-name segments.

    Segments are decoded only after splitting, so an encoded "/" stays
    inside its segment and the segment is dropped.
    """
    segments = [unquote(part) for part in path.split("/")]
    return [segment for segment in segments if is_plain_name(segment)]


def parse_request(target: str) -> RepoRequest:
    """
    Parse a request target into a RepoRequest.

    Args:
        target: Request target as received: percent-encoded path, optionally
            followed by a query string

    Returns:
        RepoRequest with file_name set when the path has two segments

    Raises:
        BadRequestError: If the target is not a simple absolute path, or the
            number of plain-name segments is not 1 or 2
    """
    if not target or "\x00" in target or "#" in target:
        raise BadRequestError("Invalid URI specified")

    try:
        parts = urlsplit(target)
    except ValueError:
        raise BadRequestError("Invalid URI specified")

    if parts.scheme or parts.netloc or not parts.path.startswith("/"):
        raise BadRequestError("Invalid URI specified")

    segments = path_segments(parts.path)
    if any("\x00" in segment for segment in segments):
        raise BadRequestError("Invalid URI specified")

    if len(segments) == 1:
        return RepoRequest(repo_name=segments[0])
    if len(segments) == 2:
        return RepoRequest(repo_name=segments[0], file_name=segments[1])

    raise BadRequestError("Invalid path specified")
