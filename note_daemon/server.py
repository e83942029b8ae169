"""
Note daemon server

Serves JSON-RPC 2.0 over stdio: one request per line on stdin, one response
per line on stdout. Requests are handled strictly in arrival order.
"""

import json
import sys
from io import TextIOWrapper
from typing import IO, Any, AsyncIterable, Awaitable, Callable

import anyio
import structlog

from .domain import Domain
from .rpc import handle_line

logger = structlog.get_logger(__name__)

Writer = Callable[[str], Awaitable[Any]]


async def read_lines(buffer: IO[bytes] | None = None) -> AsyncIterable[str]:
    """Yield decoded lines from a binary stream (stdin by default).

    Undecodable bytes become U+FFFD, so the line is answered as a parse error.
    """
    if buffer is None:
        buffer = sys.stdin.buffer
    stream = anyio.wrap_file(TextIOWrapper(buffer, encoding="utf-8", errors="replace"))
    async for line in stream:
        yield line


def _stdout_writer() -> Writer:
    stdout = anyio.wrap_file(TextIOWrapper(sys.stdout.buffer, encoding="utf-8"))

    async def write(text: str) -> None:
        await stdout.write(text)
        await stdout.flush()

    return write


async def run_server(
    domain: Domain,
    lines: AsyncIterable[str] | None = None,
    write: Writer | None = None,
) -> None:
    """Answer requests until the input stream closes.

    Args:
        domain: Operations the requests are dispatched to
        lines: Incoming request lines (defaults to stdin)
        write: Coroutine that emits one response line (defaults to stdout)
    """
    if lines is None:
        lines = read_lines()
    if write is None:
        write = _stdout_writer()

    logger.info("server_started")
    async for line in lines:
        line = line.strip()
        if not line:
            continue

        response = await handle_line(domain, line)
        if response is None:
            continue
        await write(json.dumps(response) + "\n")

    logger.info("stdin_closed")
