"""The built-in ``more`` pager."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TextIO

logger = logging.getLogger(__name__)


def page_file(
    path: str,
    hsize: int,
    vsize: int,
    out: TextIO,
    read_reply: Callable[[], str | None],
) -> None:
    """Show ``path`` one page of ``vsize`` lines at a time.

    Lines are cut to ``hsize`` characters. After each page a ``:`` prompt
    is shown; an empty reply shows the next page, anything else (or end
    of input) stops.
    """
    out.write(f"--- more: {path} ---\n")
    try:
        f = open(path, errors="replace")
    except OSError as e:
        out.write(f"more: {path}: {e.strerror}\n")
        return

    with f:
        while True:
            for _ in range(vsize):
                line = f.readline()
                if not line:
                    out.flush()
                    return
                out.write(line.rstrip("\r\n")[:hsize] + "\n")
            out.write(":")
            out.flush()
            reply = read_reply()
            if reply is None or reply != "":
                return
