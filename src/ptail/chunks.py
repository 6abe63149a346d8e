"""
chunks.py: Ordered buffer of byte runs read from a stream.

The buffer holds "the tail so far" while the total size of the input is still
unknown. Bytes are only ever consumed from the front; flush() is the single
place buffered data reaches the output.
"""

from collections import deque


class Chunk:
    """An immutable byte run with a movable start offset."""

    __slots__ = ("data", "start", "length")

    def __init__(self, data: bytes):
        self.data = data
        self.start = 0
        self.length = len(data)

    def remaining(self) -> bytes:
        return self.data[self.start:self.start + self.length]

    def consume(self, n: int):
        self.start += n
        self.length -= n

    def __repr__(self):
        return f"Chunk({self.remaining()!r})"


class ChunkBuffer:
    """
    Double-ended queue of Chunks, oldest on the left.

    len(buffer) is the number of bytes still held across all chunks.
    """

    def __init__(self):
        self._chunks = deque()
        self._size = 0

    def __len__(self):
        return self._size

    def __bytes__(self):
        return b"".join(chunk.remaining() for chunk in self._chunks)

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    def append(self, data: bytes):
        """Add DATA as the newest chunk."""
        if not data:
            return None
        chunk = Chunk(data)
        self._chunks.append(chunk)
        self._size += chunk.length
        return chunk

    def appendleft(self, data: bytes):
        """Add DATA as the oldest chunk (used when reading a file backward)."""
        if not data:
            return None
        chunk = Chunk(data)
        self._chunks.appendleft(chunk)
        self._size += chunk.length
        return chunk

    def front(self) -> Chunk:
        return self._chunks[0]

    def pop_front(self) -> Chunk:
        """Remove and return the oldest chunk."""
        chunk = self._chunks.popleft()
        self._size -= chunk.length
        return chunk

    def trim_front(self, n: int):
        """Consume N bytes from the front, dropping chunks that become empty."""
        while n > 0 and self._chunks:
            chunk = self._chunks[0]
            if chunk.length <= n:
                n -= chunk.length
                self.pop_front()
            else:
                chunk.consume(n)
                self._size -= n
                n = 0

    def drop_line(self) -> bool:
        """
        Consume bytes from the front up to and including the first newline.

        Returns:
            True if a newline was consumed, False if the buffer ran out first
        """
        while self._chunks:
            chunk = self._chunks[0]
            end = chunk.start + chunk.length
            index = chunk.data.find(b"\n", chunk.start, end)
            if index < 0:
                self.pop_front()
                continue
            self.trim_front(index - chunk.start + 1)
            return True
        return False

    def flush(self, write):
        """Pass every chunk's bytes to WRITE, oldest first, then empty the buffer."""
        while self._chunks:
            write(self.pop_front().remaining())
