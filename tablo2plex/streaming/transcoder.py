"""
FFmpeg transcoder supervision.

FFmpeg only remuxes the source into MPEG-TS on stdout. Its stderr is
logged and never interpreted.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

logger = logging.getLogger(__name__)


class TranscoderError(Exception):
    """The transcoder could not be started."""


def build_ffmpeg_command(
    ffmpeg_path: str,
    source_url: str,
    log_level: str = "repeat+level+panic",
) -> list[str]:
    return [
        ffmpeg_path,
        "-i", source_url,
        "-c", "copy",
        "-f", "mpegts",
        "-v", log_level,
        "pipe:1",
    ]


class FFmpegTranscoder:
    """One ffmpeg process streaming a source URL to stdout."""

    def __init__(
        self,
        source_url: str,
        ffmpeg_path: str = "ffmpeg",
        log_level: str = "repeat+level+panic",
        read_size: int = 65536,
    ):
        self.source_url = source_url
        self.command = build_ffmpeg_command(ffmpeg_path, source_url, log_level)
        self.read_size = read_size
        self.process: Optional[asyncio.subprocess.Process] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._killed = False

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(self) -> None:
        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscoderError(f"Failed to start {self.command[0]}: {e}") from e

        self._stderr_task = asyncio.create_task(self._log_stderr())
        logger.debug(f"Started ffmpeg (PID: {self.process.pid})")

    async def _log_stderr(self) -> None:
        assert self.process is not None and self.process.stderr is not None
        while True:
            line = await self.process.stderr.readline()
            if not line:
                break
            logger.error(f"[ffmpeg] {line.decode('utf-8', errors='replace').rstrip()}")

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield stdout chunks until ffmpeg closes its output."""
        if self.process is None or self.process.stdout is None:
            raise TranscoderError("Transcoder was not started")
        while True:
            chunk = await self.process.stdout.read(self.read_size)
            if not chunk:
                break
            yield chunk

    async def kill(self) -> None:
        """
        Force-kill the process if it is still running and reap it.

        The signal is sent before the first suspension point, so the process
        is killed even if this coroutine is cancelled while reaping.
        """
        if self._killed or self.process is None:
            return
        self._killed = True

        if self.process.returncode is None:
            try:
                self.process.kill()
            except ProcessLookupError:
                pass

        if self._stderr_task is not None:
            self._stderr_task.cancel()

        await self.process.wait()
        logger.debug(f"ffmpeg (PID: {self.process.pid}) exited with {self.process.returncode}")


TranscoderFactory = Callable[[str], FFmpegTranscoder]


def ffmpeg_factory(
    ffmpeg_path: str = "ffmpeg",
    log_level: str = "repeat+level+panic",
    read_size: int = 65536,
) -> TranscoderFactory:
    """Factory bound to the configured ffmpeg settings."""

    def create(source_url: str) -> FFmpegTranscoder:
        return FFmpegTranscoder(source_url, ffmpeg_path, log_level, read_size)

    return create
