"""
Pytest configuration for unit tests.

Provides a repository root and a fake indexer executable that records
every invocation.
"""
import json
import sys
import textwrap

import pytest

from rpmgate.repository.store import RepositoryStore


FAKE_INDEXER_SOURCE = """
import json
import os
import sys
import time

started = time.time()
time.sleep({delay})
repo = os.path.basename(sys.argv[-1])
with open({log!r}, "a") as f:
    f.write(json.dumps({{"args": sys.argv[1:], "start": started, "end": time.time()}}) + "\\n")
sys.stderr.write("indexed " + repo + "\\n")
sys.exit(1 if repo.startswith("fail") else 0)
"""


class FakeIndexer:
    """Python script standing in for createrepo."""

    def __init__(self, directory, delay: float = 0.0):
        self.log_path = directory / "indexer-calls.ndjson"
        self.script_path = directory / "fake_indexer.py"
        self.script_path.write_text(
            textwrap.dedent(FAKE_INDEXER_SOURCE.format(delay=delay, log=str(self.log_path)))
        )
        self.command = [sys.executable, str(self.script_path)]

    def calls(self):
        """Recorded invocations, in completion order."""
        if not self.log_path.exists():
            return []
        return [json.loads(line) for line in self.log_path.read_text().splitlines() if line]


@pytest.fixture
def repo_root(tmp_path):
    """Empty repository root."""
    root = tmp_path / "repos"
    root.mkdir()
    return root


@pytest.fixture
def store(repo_root):
    """Repository store over the empty root."""
    return RepositoryStore(repo_root)


@pytest.fixture
def fake_indexer(tmp_path):
    """Fake indexer exiting 1 for repositories named fail*, 0 otherwise."""
    directory = tmp_path / "indexer"
    directory.mkdir()
    return FakeIndexer(directory)


@pytest.fixture
def slow_fake_indexer(tmp_path):
    """Fake indexer that runs long enough for concurrent calls to overlap."""
    directory = tmp_path / "slow-indexer"
    directory.mkdir()
    return FakeIndexer(directory, delay=0.2)
