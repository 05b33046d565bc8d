"""Scoped temporary working area and subprocess helper for rasterizer/OCR calls."""

import asyncio
import contextlib
import logging
import shutil
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path

from freight_intake.exceptions import ExtractionFailed

logger = logging.getLogger("freight.pdf")


@contextlib.asynccontextmanager
async def scoped_workspace(prefix: str = "freight-") -> AsyncIterator[Path]:
    """Temporary directory removed on every exit path."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("Removed workspace %s", path)


async def run_subprocess(args: list[str], timeout: float, cwd: Path | None = None) -> bytes:
    """Run an external binary and return its stdout.

    Raises:
        ExtractionFailed: Binary missing, non-zero exit, or timeout. The child is
            killed before the timeout error is raised.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ExtractionFailed(f"Binary not available: {args[0]}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise ExtractionFailed(f"{args[0]} timed out after {timeout:.0f}s") from e

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()[:200]
        raise ExtractionFailed(f"{args[0]} exited with {proc.returncode}: {message}")
    return stdout
