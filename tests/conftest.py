import sys

import pytest
from fsspec.implementations.memory import MemoryFileSystem
from loguru import logger

from buildrelay.config import RelayConfig


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop sinks bound to streams captured by a single test."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")


@pytest.fixture
def config(tmp_path):
    return RelayConfig(staging_root=tmp_path / "staging")


@pytest.fixture
def memory_fs():
    """In-memory stand-in for an object store, emptied after each test."""
    MemoryFileSystem.store.clear()
    MemoryFileSystem.pseudo_dirs[:] = [""]
    yield MemoryFileSystem()
    MemoryFileSystem.store.clear()
    MemoryFileSystem.pseudo_dirs[:] = [""]


@pytest.fixture
def source_tree(tmp_path):
    """A small directory tree with nested files."""
    root = tmp_path / "tree"
    (root / "sub" / "deep").mkdir(parents=True)
    (root / "a.txt").write_text("alpha")
    (root / "sub" / "b.txt").write_text("bravo")
    (root / "sub" / "deep" / "c.bin").write_bytes(bytes(range(256)) * 10)
    return root
