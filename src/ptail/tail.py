"""
tail.py: Display the last part of files, optionally following them for new content.

Mimics the POSIX 'tail' command:
  ptail <file>            - Show last 10 lines
  ptail -n 20 <file>      - Show last 20 lines
  ptail -n +20 <file>     - Show everything from line 20 on
  ptail -c 100 <file>     - Show last 100 bytes
  ptail -f <file>         - Follow the open file for new content
  ptail -F <file>         - Follow the path, reopening it after rotation
"""

import logging
import os
import sys

from .follow import DescriptorWatcher, FollowedSource, PathFollower, follow_descriptors
from .forward import skip_head
from .reverse import buffered_tail, seek_tail
from .tail_common import RunContext, get_config, print_error, setup_logging

STDIN_FD = 0


def open_input(name: str):
    """Open NAME for reading ('-' is stdin). Returns the descriptor, or None on failure."""
    if name == "-":
        return STDIN_FD
    try:
        return os.open(name, os.O_RDONLY)
    except OSError as e:
        print_error(f"cannot open '{name}' for reading: {e.strerror}")
        return None


def tail_fd(ctx, fd: int):
    """Print the selected part of one input."""
    selection = ctx.selection
    if not selection.from_end:
        skip_head(ctx, fd, selection)
    elif not seek_tail(ctx, fd, selection):
        buffered_tail(ctx, fd, selection)


def register(ctx, key, name: str, fd: int):
    """Wrap an input that has been tailed as a FollowedSource."""
    path = name if name != "-" else f"/proc/self/fd/{fd}"
    source = FollowedSource(key, name, path)
    try:
        st = source.attach(fd)
    except OSError as e:
        print_error(f"{name}: {e.strerror}")
        source.close()
        ctx.fail()
        return None
    source.record_identity(st)
    return source


def run(ctx) -> int:
    """
    Tail every input, then follow them if requested.

    Returns:
        Exit status: 1 if any input could not be opened, else 0.
        Never returns while following.
    """
    files = ctx.config['FILES']
    follow = ctx.config.get('FOLLOW')
    show_headers = len(files) > 1

    sources = []
    shown = 0
    for key, name in enumerate(files):
        fd = open_input(name)
        if fd is None:
            ctx.fail()
            continue

        if shown:
            ctx.write(b"\n")
        shown += 1
        if show_headers:
            ctx.write(f"==> {name} <==\n".encode())
        ctx.active = key

        tail_fd(ctx, fd)
        ctx.flush()

        if follow:
            source = register(ctx, key, name, fd)
            if source is not None:
                sources.append(source)
        elif fd != STDIN_FD:
            os.close(fd)

    if not sources:
        return ctx.status

    if follow == "name":
        logging.debug(f"following {len(sources)} path(s) every {ctx.config['SLEEP']}s")
        PathFollower(ctx, sources, ctx.config['SLEEP']).run()
    else:
        logging.debug(f"following {len(sources)} descriptor(s)")
        watcher = DescriptorWatcher(ctx.watch_interval)
        for source in sources:
            watcher.add(source)
        follow_descriptors(ctx, watcher)
    return ctx.status


def main(args_list=None):
    config = get_config(args_list)
    setup_logging(config)

    ctx = RunContext(config)
    try:
        status = run(ctx)
        ctx.flush()
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        # Keep interpreter shutdown from flushing into the closed pipe again.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)
    except OSError as e:
        print_error(f"write error: {e.strerror or e}")
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
