"""
Pytest configuration and shared fixtures for ptail tests.

This module provides common fixtures used across multiple test files.
"""

import io
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add the src directory to the path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ptail.tail_common import RunContext, Selection


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_ctx():
    """Build a RunContext writing into a BytesIO; read it back with ctx.out.getvalue()."""
    def _make(chunk_size=4096, **config):
        return RunContext(config, out=io.BytesIO(), chunk_size=chunk_size, watch_interval=0.01)
    return _make


@pytest.fixture
def open_fds():
    """Track descriptors opened by a test and close whatever is left at the end."""
    fds = []
    yield fds
    for fd in fds:
        try:
            os.close(fd)
        except OSError:
            pass


@pytest.fixture
def file_fd(temp_dir, open_fds):
    """Write DATA to a file and return a read-only descriptor on it."""
    counter = [0]

    def _open(data: bytes, name=None):
        counter[0] += 1
        path = temp_dir / (name or f"input{counter[0]}.txt")
        path.write_bytes(data)
        fd = os.open(path, os.O_RDONLY)
        open_fds.append(fd)
        return fd
    return _open


@pytest.fixture
def pipe_fd(open_fds):
    """Return the read end of a pipe already holding DATA, with the write end closed."""
    def _open(data: bytes):
        r, w = os.pipe()
        open_fds.append(r)
        os.write(w, data)
        os.close(w)
        return r
    return _open


def last_lines(data: bytes, n: int) -> bytes:
    """Reference answer: split the whole input into lines and keep the last N."""
    if not n:
        return b""
    pieces = data.split(b"\n")
    lines = [piece + b"\n" for piece in pieces[:-1]]
    if pieces[-1]:
        lines.append(pieces[-1])
    return b"".join(lines[max(len(lines) - n, 0):])


def lines(n: int) -> Selection:
    return Selection(n, False, True)


def tail_bytes(n: int) -> Selection:
    return Selection(n, True, True)
