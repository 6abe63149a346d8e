"""
follow.py: Keep printing data appended to inputs after their tail was shown.

Two protocols:
- follow_descriptors() (-f): watch the already-open descriptors and print
  whatever becomes readable. A renamed or deleted file keeps being read.
- PathFollower (-F): poll each path on a timer, reopening it when the path
  names a different file (rotation) and rewinding when it shrinks (truncation).

Both loops run until the process is interrupted.
"""

import logging
import os
import select
import stat
import time


class FollowedSource:
    """One followed input: display name, descriptor, and file identity."""

    def __init__(self, key, name: str, path: str = None):
        self.key = key
        self.name = name
        self.path = path
        self.fd = None
        self.seekable = False
        self.dev = None
        self.ino = None

    def __repr__(self):
        return f"FollowedSource({self.name!r}, fd={self.fd})"

    @property
    def is_open(self) -> bool:
        return self.fd is not None

    def attach(self, fd: int):
        """
        Take ownership of FD; it is closed by close() even if this fails.

        Non-regular descriptors are switched to non-blocking mode so that
        reading "everything available" never stalls on an empty pipe.

        Returns:
            os.stat_result of FD
        """
        self.fd = fd
        st = os.fstat(fd)
        self.seekable = stat.S_ISREG(st.st_mode)
        if not self.seekable:
            os.set_blocking(fd, False)
        return st

    def record_identity(self, st):
        self.dev = st.st_dev
        self.ino = st.st_ino

    def same_file(self, st) -> bool:
        return (st.st_dev, st.st_ino) == (self.dev, self.ino)

    def offset(self):
        """Current read offset, or None when the descriptor cannot seek."""
        try:
            return os.lseek(self.fd, 0, os.SEEK_CUR)
        except OSError:
            return None

    def close(self):
        if self.fd is None:
            return
        try:
            os.close(self.fd)
        except OSError as e:
            logging.debug(f"close failed for {self.name}: {e}")
        self.fd = None


def drain(ctx, source) -> bool:
    """
    Copy everything currently readable from SOURCE to the output.

    A '==> name <==' header precedes the data when another source wrote last.

    Returns:
        False when SOURCE can produce nothing more: a read error, or end of
        stream on a pipe or other non-seekable descriptor.
    """
    while True:
        try:
            data = os.read(source.fd, ctx.chunk_size)
        except BlockingIOError:
            return True
        except OSError as e:
            logging.warning(f"read error on {source.name}: {e}")
            return False

        if not data:
            return source.seekable

        ctx.switch_to(source.key, source.name)
        ctx.write(data)
        ctx.flush()


# =============================================================================
# FOLLOW BY DESCRIPTOR (-f)
# =============================================================================

class DescriptorWatcher:
    """
    Wait until any registered source has data to read.

    Regular files count as ready when their size is past the read offset.
    Pipes, fifos and terminals are multiplexed with select().
    """

    def __init__(self, interval: float):
        self.interval = interval
        self.sources = []

    def add(self, source):
        self.sources.append(source)

    def remove(self, source):
        self.sources.remove(source)

    def _file_has_data(self, source) -> bool:
        try:
            return os.fstat(source.fd).st_size > os.lseek(source.fd, 0, os.SEEK_CUR)
        except OSError as e:
            logging.debug(f"size check failed for {source.name}: {e}")
            # Let the read report the problem.
            return True

    def ready(self, timeout: float = 0) -> list:
        """Return the sources with data, in registration order, waiting up to TIMEOUT."""
        files = [s for s in self.sources if s.seekable and self._file_has_data(s)]
        others = [s for s in self.sources if not s.seekable]

        readable = set()
        if others:
            try:
                fds, _, _ = select.select([s.fd for s in others], [], [], 0 if files else timeout)
                readable = set(fds)
            except (OSError, ValueError) as e:
                logging.warning(f"select failed: {e}")
                readable = set(s.fd for s in others)
        elif not files and timeout:
            time.sleep(timeout)

        return [s for s in self.sources
                if s in files or (not s.seekable and s.fd in readable)]

    def wait(self) -> list:
        """Block until at least one source is ready."""
        while True:
            ready = self.ready(self.interval)
            if ready:
                return ready

    def service(self, ctx):
        """Wait for data once and drain every ready source."""
        for source in self.wait():
            if not drain(ctx, source):
                logging.debug(f"no more data from {source.name}, no longer watching it")
                self.remove(source)


def follow_descriptors(ctx, watcher):
    """Run follow-by-descriptor forever."""
    while True:
        watcher.service(ctx)


# =============================================================================
# FOLLOW BY PATH (-F)
# =============================================================================

class PathFollower:
    """Poll a fixed list of paths, surviving rotation and truncation."""

    def __init__(self, ctx, sources: list, interval: float):
        self.ctx = ctx
        self.sources = sources
        self.interval = interval

    def poll(self):
        """One pass over every source, in registration order."""
        ctx = self.ctx
        for source in self.sources:
            try:
                st = os.stat(source.path)
            except OSError as e:
                logging.debug(f"stat failed for {source.path}: {e}")
                if source.is_open:
                    ctx.notice(f"file inaccessible: {source.path}")
                    source.close()
                continue

            if not source.is_open or not source.same_file(st):
                source.close()
                try:
                    source.attach(os.open(source.path, os.O_RDONLY))
                except OSError as e:
                    logging.debug(f"open failed for {source.path}: {e}")
                    source.close()
                    continue
                ctx.notice(f"following new file: {source.path}")
                source.record_identity(st)
            elif source.seekable:
                offset = source.offset()
                if offset is not None and st.st_size < offset:
                    ctx.notice(f"file truncated: {source.path}")
                    os.lseek(source.fd, 0, os.SEEK_SET)

            drain(ctx, source)

    def run(self):
        """Run follow-by-path forever."""
        while True:
            self.poll()
            time.sleep(self.interval)
