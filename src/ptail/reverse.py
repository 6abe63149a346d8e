"""
reverse.py: Find and print the last N lines or bytes of a stream.

Two strategies, which must produce identical output:
- seek_tail():     jump to the end of a seekable file and scan backward.
- buffered_tail(): read forward to the end, keeping only the trailing chunks
                   that can still be part of the answer. Works on pipes.
"""

import logging
import os

from .chunks import ChunkBuffer
from .tail_common import read_chunk, read_exact


def copy_to_end(ctx, fd: int):
    """Copy everything from the current offset of FD to the output."""
    while True:
        data = read_chunk(fd, ctx.chunk_size)
        if not data:
            break
        ctx.write(data)


def seek_tail(ctx, fd: int, selection) -> bool:
    """
    Print the tail of FD using lseek().

    Returns:
        False if FD cannot be positioned (pipe, fifo, terminal); nothing has
        been read in that case and the caller should use buffered_tail().
    """
    try:
        end = os.lseek(fd, 0, os.SEEK_END)
    except OSError as e:
        logging.debug(f"fd {fd} is not seekable ({e}), using buffered scan")
        return False

    count = selection.count

    if selection.by_bytes:
        try:
            os.lseek(fd, max(end - count, 0), os.SEEK_SET)
        except OSError:
            os.lseek(fd, 0, os.SEEK_SET)
        copy_to_end(ctx, fd)
        return True

    buffer = ChunkBuffer()
    pos = end
    window = ctx.chunk_size
    remaining = count
    skip_last = True

    while remaining and pos:
        window = min(window, pos)
        pos -= window
        try:
            os.lseek(fd, pos, os.SEEK_SET)
        except OSError as e:
            logging.warning(f"seek failed: {e}")
            break

        data = read_exact(fd, window)
        if not data:
            break
        buffer.appendleft(data)

        # A newline in the file's final byte does not start another line.
        stop = len(data)
        if skip_last:
            stop -= 1
            skip_last = False

        index = data.rfind(b"\n", 0, stop)
        while index >= 0:
            remaining -= 1
            if not remaining:
                buffer.trim_front(index + 1)
                break
            index = data.rfind(b"\n", 0, index)

    buffer.flush(ctx.write)

    # Leave the offset at the end so -f continues from there.
    os.lseek(fd, end, os.SEEK_SET)
    return True


def buffered_tail(ctx, fd: int, selection):
    """Print the tail of FD by reading it forward to the end."""
    count = selection.count

    if not count:
        while read_chunk(fd, ctx.chunk_size):
            pass
        return

    buffer = ChunkBuffer()

    if selection.by_bytes:
        while True:
            data = read_chunk(fd, ctx.chunk_size)
            if not data:
                break
            buffer.append(data)

            excess = len(buffer) - count
            if excess > 0:
                while buffer.front().length <= excess:
                    excess -= buffer.pop_front().length
                buffer.trim_front(excess)
    else:
        pending = 0
        line_start = True
        while True:
            data = read_chunk(fd, ctx.chunk_size)
            if not data:
                break
            buffer.append(data)

            # The first byte after a newline starts a new line.
            ends_with_newline = data.endswith(b"\n")
            starts = data.count(b"\n") + line_start - ends_with_newline
            line_start = ends_with_newline

            pending += starts
            while pending > count:
                buffer.drop_line()
                pending -= 1

    buffer.flush(ctx.write)
