"""Common utility functions for the project."""

import asyncio
import logging
import signal
import threading
from contextlib import asynccontextmanager
from enum import Enum
from typing import (
    Any,
    AsyncIterator,
)

logger = logging.getLogger(__name__)


class AnsiColors(str, Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    DIM = "\033[2m"
    BOLD = "\033[1m"

    def __str__(self) -> str:
        return self.value


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color}{text}\033[0m", *args, **kwargs)  # ANSI reset at the end


# ---------------------------------------------------------------------------
# Terminal input
# ---------------------------------------------------------------------------
@asynccontextmanager
async def interrupt_event() -> AsyncIterator[asyncio.Event]:
    """
    Turn Ctrl+C into an event instead of a task cancellation.

    The loop checks the event between turns, so a turn that is already running is allowed to
    finish.  Where the platform cannot install the handler, Ctrl+C keeps its default behaviour.
    """
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, stop.set)
        installed = True
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT handler not supported here; Ctrl+C will raise KeyboardInterrupt")
    try:
        yield stop
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def read_line(prompt: str, stop: asyncio.Event | None = None) -> str | None:
    """
    Read one line from standard input without blocking the event loop.

    Returns:
        The line (without newline), or None on end-of-input or when *stop* is set first.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def _deliver(line: str | None) -> None:
        if not future.done():
            future.set_result(line)

    def _reader() -> None:
        try:
            line: str | None = input(prompt)
        except EOFError:
            line = None
        try:
            loop.call_soon_threadsafe(_deliver, line)
        except RuntimeError:
            logger.debug("Input arrived after the event loop closed; dropped")

    # Daemon thread: a pending read must not keep the process alive at exit.
    threading.Thread(target=_reader, name="stdin-reader", daemon=True).start()
    if stop is None:
        return await future

    stopper = asyncio.ensure_future(stop.wait())
    try:
        done, _ = await asyncio.wait({future, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
    if future in done:
        return future.result()
    return None
