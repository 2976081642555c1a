# dat2sql/lines.py
"""Line reading and positional tag classification."""
import gzip
import io
import logging
import sys
from contextlib import contextmanager
from typing import IO, Iterable, Iterator, NamedTuple

from .errors import InputError
from .settings import STDIO

log = logging.getLogger(__name__)

# Sentinel tags
TERMINATOR   = "//"
CONTINUATION = "  "
UNRECOGNIZED = "??"


class ClassifiedLine(NamedTuple):
    tag: str
    payload: str


class LineClassifier:
    """
    Positional classifier: the first `tag_width` characters select the tag,
    the payload starts at `payload_offset`.
    Lines that start with blanks carry no tag and continue the active field.
    """
    def __init__(self, tags: Iterable[str], tag_width: int = 2, payload_offset: int = 5,
                 terminator: str = TERMINATOR):
        self.tags = frozenset(tags)
        self.tag_width = tag_width
        self.payload_offset = payload_offset
        self.terminator = terminator

    def classify(self, line: str) -> ClassifiedLine:
        if line.startswith(self.terminator):
            return ClassifiedLine(TERMINATOR, "")
        if not line.strip():
            return ClassifiedLine(UNRECOGNIZED, line)
        head = line[:self.tag_width]
        if not head.strip():
            return ClassifiedLine(CONTINUATION, line.strip())
        if head in self.tags and line[self.tag_width:self.payload_offset].strip() == "":
            return ClassifiedLine(head, line[self.payload_offset:].rstrip())
        return ClassifiedLine(UNRECOGNIZED, line)


@contextmanager
def open_text(path: str) -> Iterator[IO[str]]:
    """Open an input path (or `-` for stdin) as text; `.gz` files are decompressed."""
    if path == STDIO:
        yield sys.stdin
        return
    try:
        if path.endswith(".gz"):
            fh = gzip.open(path, "rt", encoding="utf-8", newline="")
        else:
            fh = io.open(path, "r", encoding="utf-8", newline="")
    except OSError as e:
        raise InputError(f"cannot open {path}: {e}") from e
    try:
        yield fh
    finally:
        fh.close()


def read_lines(stream: IO[str], name: str = STDIO) -> Iterator[str]:
    """Yield newline-stripped lines, rejecting binary input."""
    try:
        for lineno, line in enumerate(stream, start=1):
            if "\x00" in line:
                raise InputError(f"{name}:{lineno}: NUL byte, input is not text")
            yield line.rstrip("\r\n")
    except UnicodeDecodeError as e:
        raise InputError(f"{name}: not UTF-8 text ({e})") from e


def iter_input_lines(paths: Iterable[str]) -> Iterator[str]:
    """Concatenate several sources into one continuous line sequence."""
    for path in paths:
        log.info("reading %s", "standard input" if path == STDIO else path)
        with open_text(path) as fh:
            yield from read_lines(fh, path)
