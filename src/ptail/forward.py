"""
forward.py: Print a stream starting at line or byte K ("+K" selections).
"""

from .tail_common import read_chunk


def skip_head(ctx, fd: int, selection):
    """
    Discard the first K-1 lines (or bytes) of FD and copy the rest.

    Nothing is buffered: skipped bytes are dropped as they are read. A read
    error ends the input quietly, even before the prefix has been skipped.
    """
    skip = max(selection.count - 1, 0)

    while True:
        data = read_chunk(fd, ctx.chunk_size)
        if not data:
            break

        offset = 0
        if skip:
            if selection.by_bytes:
                offset = min(skip, len(data))
                skip -= offset
            else:
                while skip:
                    index = data.find(b"\n", offset)
                    if index < 0:
                        offset = len(data)
                        break
                    offset = index + 1
                    skip -= 1

        if offset < len(data):
            ctx.write(data[offset:] if offset else data)
