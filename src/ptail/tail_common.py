"""
tail_common.py: Shared library for the ptail toolchain.

This module consolidates the pieces every tail component needs:
- Configuration management (command line parsing into a config dict, NUMBER parsing).
- Logging setup (stderr, optional log file).
- User interface helpers (colored error messages).
- Low-level reads that treat failures as end of stream.
- The run context threaded through selection and follow loops.
"""

import argparse
import logging
import os
import re
import sys
from collections import namedtuple
from pathlib import Path

from colorama import Fore, Style

from .version import __version__

# Read window used by every scanner; matches a page-sized buffer.
CHUNK_SIZE = 4096

DEFAULT_LINES = 10
DEFAULT_SLEEP = 1.0

# How long follow-by-descriptor waits between readiness checks.
WATCH_INTERVAL = 0.1

_SUFFIXES = "kmgtpe"
_NUMBER_RE = re.compile(r"^([+-]?)(\d+)([kmgtpe]?)$", re.IGNORECASE)
_OBSOLETE_RE = re.compile(r"^-\d+[kmgtpe]?$", re.IGNORECASE)

_COUNT_OPTIONS = ("-n", "-c", "--lines", "--bytes")
_VALUE_OPTIONS = ("-s", "--sleep-interval", "-O", "--outfile")


Selection = namedtuple("Selection", ["count", "by_bytes", "from_end"])
Selection.__doc__ = """What to print from one input: COUNT lines (or bytes), from the end or the start."""

DEFAULT_SELECTION = Selection(DEFAULT_LINES, False, True)


# =============================================================================
# CONFIGURATION MANAGEMENT
# =============================================================================

def parse_count(text: str) -> tuple:
    """
    Parse a NUMBER argument for -n / -c.

    A leading '+' counts from the start of the input; '-' or no sign counts
    from the end. An optional k/m/g/t/p/e suffix multiplies by powers of 1024.

    Returns:
        Tuple of (count, from_end)

    Raises:
        argparse.ArgumentTypeError: If the text is not a valid NUMBER
    """
    match = _NUMBER_RE.match(text.strip())
    if not match:
        raise argparse.ArgumentTypeError(f"invalid number: '{text}'")

    sign, digits, suffix = match.groups()
    count = int(digits)
    if suffix:
        count *= 1024 ** (_SUFFIXES.index(suffix.lower()) + 1)
    return count, sign != "+"


def _interval_seconds(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid interval: '{text}'")
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid interval: '{text}'")
    return value


class _CountAction(argparse.Action):
    """Store a Selection; the last of -n / -c on the command line wins."""

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            count, from_end = parse_count(values)
        except argparse.ArgumentTypeError as e:
            parser.error(f"argument {option_string}: {e}")
        setattr(namespace, self.dest, Selection(count, self.const, from_end))


def build_parser() -> argparse.ArgumentParser:
    """Build the ptail argument parser."""
    parser = argparse.ArgumentParser(
        prog="ptail",
        description="Copy the last lines (or bytes) of files to stdout.",
        usage="ptail [-n|-c NUMBER] [-f|-F] [-s SECONDS] [FILE...]",
        epilog="""
Examples:
  ptail app.log                 # last 10 lines
  ptail -n 20 app.log           # last 20 lines
  ptail -n +5 app.log           # everything from line 5 on
  ptail -c 2k app.log           # last 2048 bytes
  ptail -F -s 5 app.log         # follow app.log across rotations, polling every 5s
  cat app.log | ptail -3        # obsolete form of -n 3
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", "-v", action="version", version=f"{__version__}")
    parser.add_argument("files", nargs="*", metavar="FILE",
                        help="Files to read ('-' or none means stdin).")
    parser.add_argument("-n", "--lines", dest="selection", action=_CountAction, const=False,
                        metavar="NUMBER",
                        help="Output the last NUMBER lines (default 10), +NUMBER counts from start.")
    parser.add_argument("-c", "--bytes", dest="selection", action=_CountAction, const=True,
                        metavar="NUMBER",
                        help="Output the last NUMBER bytes, +NUMBER counts from start.")
    parser.add_argument("-f", dest="follow", action="store_const", const="descriptor",
                        help="Follow FILE(s) by descriptor, waiting for more data to be appended.")
    parser.add_argument("-F", dest="follow", action="store_const", const="name",
                        help="Follow FILE(s) by filename, waiting for more data, and retrying.")
    parser.add_argument("-s", "--sleep-interval", dest="sleep", type=_interval_seconds,
                        default=DEFAULT_SLEEP, metavar="SECONDS",
                        help="With -F, sleep SECONDS between retries (default 1).")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging on stderr.")
    parser.add_argument("-O", "--outfile", help="Also write log messages to this file.")
    return parser


def _is_count_option(arg: str) -> bool:
    return (arg in _COUNT_OPTIONS
            or arg.startswith(("--lines=", "--bytes="))
            or (len(arg) > 2 and arg[:2] in _COUNT_OPTIONS))


def rewrite_obsolete_count(args_list) -> list:
    """
    Translate the obsolete "-NUMBER" first operand into "--lines=-NUMBER".

    Only applies when neither -n nor -c appears on the command line.
    """
    args = list(args_list)
    if any(_is_count_option(arg) for arg in args if arg != "--"):
        return args

    i = 0
    while i < len(args):
        arg = args[i]
        if _OBSOLETE_RE.match(arg):
            args[i] = f"--lines={arg}"
            break
        if arg == "--" or arg == "-" or not arg.startswith("-"):
            break
        if arg in _VALUE_OPTIONS:
            i += 1
        i += 1
    return args


def get_config(args_list=None) -> dict:
    """
    Parse the command line into a configuration dictionary.

    Keys:
        FILES      list of input names ('-' for stdin)
        SELECTION  Selection to apply to every input
        FOLLOW     None, 'descriptor' (-f) or 'name' (-F)
        SLEEP      polling period in seconds for -F
        LOG_LEVEL  logging level name
        OUTFILE    optional log file path
    """
    if args_list is None:
        args_list = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_intermixed_args(rewrite_obsolete_count(args_list))

    files = list(args.files)
    selection = args.selection
    if selection is None:
        selection = DEFAULT_SELECTION

    if not files:
        files = ["-"]

    config = {
        'FILES': files,
        'SELECTION': selection,
        'FOLLOW': args.follow,
        'SLEEP': args.sleep,
        'LOG_LEVEL': 'DEBUG' if args.debug else 'WARNING',
        'OUTFILE': args.outfile,
    }
    return config


def setup_logging(config):
    """Configures Python's logging module."""
    log_level_str = config.get('LOG_LEVEL', 'WARNING').upper()
    log_file_path = config.get('OUTFILE', None)

    numeric_level = getattr(logging, log_level_str, None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level_str}')

    log_format = '%(asctime)s - %(levelname)s - %(message)s'

    # stdout carries the tailed data, so log records go to stderr
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file_path:
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file_path))

    logging.basicConfig(level=numeric_level, format=log_format, handlers=handlers, force=True)
    logging.debug(f"Logging setup with level {log_level_str}.")


# =============================================================================
# USER INTERFACE
# =============================================================================

def print_error(message: str):
    """Print a 'tail:' error message on stderr, in red on a terminal."""
    text = f"tail: {message}"
    if sys.stderr.isatty():
        text = f"{Fore.RED}{text}{Style.RESET_ALL}"
    print(text, file=sys.stderr)


# =============================================================================
# LOW-LEVEL I/O
# =============================================================================

def read_chunk(fd: int, size: int) -> bytes:
    """
    Read up to SIZE bytes from FD.

    A read error is treated as end of stream and returns b''.
    BlockingIOError is left to the caller (non-blocking follow descriptors).
    """
    try:
        return os.read(fd, size)
    except BlockingIOError:
        raise
    except OSError as e:
        logging.debug(f"read failed on fd {fd}: {e}")
        return b""


def read_exact(fd: int, size: int) -> bytes:
    """Read until SIZE bytes have arrived or the stream ends."""
    parts = []
    while size > 0:
        data = read_chunk(fd, size)
        if not data:
            break
        parts.append(data)
        size -= len(data)
    return b"".join(parts)


# =============================================================================
# RUN CONTEXT
# =============================================================================

class RunContext:
    """
    Per-run state shared by the selection phase and the follow loops.

    Holds the configuration, the binary output stream, the active-source
    marker used for '==> name <==' headers, and the exit status.
    """

    def __init__(self, config: dict = None, out=None, chunk_size: int = CHUNK_SIZE,
                 watch_interval: float = WATCH_INTERVAL):
        self.config = config if config is not None else {}
        self.out = out if out is not None else sys.stdout.buffer
        self.chunk_size = chunk_size
        self.watch_interval = watch_interval
        self.active = None
        self.status = 0

    @property
    def selection(self) -> Selection:
        return self.config.get('SELECTION', DEFAULT_SELECTION)

    def write(self, data: bytes):
        """Write DATA to the output. Errors propagate: a failed write is fatal."""
        if data:
            self.out.write(data)

    def flush(self):
        self.out.flush()

    def notice(self, message: str):
        """Write a 'tail: ...' status line into the output stream."""
        self.write(f"tail: {message}\n".encode())
        self.flush()

    def switch_to(self, key, name: str):
        """Emit a header if output is switching to a different source."""
        if self.active != key:
            self.active = key
            self.write(f"\n==> {name} <==\n".encode())

    def fail(self):
        """Record a non-fatal failure; the run will exit non-zero."""
        self.status = 1
