import os
import re
import uuid
import asyncio
import logging
import functools
from collections import deque
from concurrent.futures import Executor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping, Optional

import model_manager
import transcriber
from config import DEFAULT_MODEL_URL
from errors import FilesystemError, ProcessExitError, ProcessLaunchError
from progress_parser import (
    ProgressEvent,
    Stage,
    TranscodeProgressParser,
    parse_download_progress,
)

# Configure logging
logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
                    format='%(asctime)s - %(levelname)s - %(message)s')

# ffmpeg redraws its status line with '\r', yt-dlp --newline uses '\n'
_LINE_SPLIT = re.compile(rb'[\r\n]')

Emit = Callable[[ProgressEvent], None]


@dataclass
class PipelineSettings:
    work_dir: str
    models_dir: str
    yt_dlp_binary: str = 'yt-dlp'
    ffmpeg_binary: str = 'ffmpeg'
    fetch_format: str = 'ba[ext=webm]'
    model_url: str = DEFAULT_MODEL_URL
    model_filename: str = model_manager.MODEL_FILENAME
    language: Optional[str] = 'vi'

    @classmethod
    def from_config(cls, config: Mapping) -> 'PipelineSettings':
        """Build settings from a Flask-style config mapping (see config.Config)."""
        return cls(
            work_dir=config['WORK_DIR'],
            models_dir=os.path.join(config['DATA_DIR'], 'models'),
            yt_dlp_binary=config['YT_DLP_BINARY'],
            ffmpeg_binary=config['FFMPEG_BINARY'],
            fetch_format=config['FETCH_FORMAT'],
            model_url=config['MODEL_URL'],
            model_filename=config['MODEL_FILENAME'],
            language=config.get('LANGUAGE') or None,
        )


def transcript_path_for(audio_path) -> Path:
    """Where the transcript of a converted WAV is saved: <stem>_transcript.txt beside it."""
    audio_path = Path(audio_path)
    return audio_path.with_name(f"{audio_path.stem}_transcript.txt")


@dataclass
class PipelineContext:
    """Working state of one job. Files are named after a fresh uuid."""
    work_dir: Path
    raw_audio: Path
    converted_audio: Path
    transcript_path: Path
    model_path: Optional[Path] = None

    @classmethod
    def create(cls, work_dir) -> 'PipelineContext':
        work_dir = Path(work_dir)
        try:
            work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create work directory {work_dir}: {e}") from e
        key = uuid.uuid4()
        return cls(
            work_dir=work_dir,
            raw_audio=work_dir / f"{key}.webm",
            converted_audio=work_dir / f"{key}.wav",
            transcript_path=transcript_path_for(work_dir / f"{key}.wav"),
        )

    def cleanup(self, succeeded: bool) -> None:
        """Remove the raw download always; remove the outputs too when the job failed."""
        paths = [self.raw_audio]
        if not succeeded:
            paths += [self.converted_audio, self.transcript_path]
        for path in paths:
            if path.exists():
                try:
                    os.remove(path)
                    logging.debug(f"Removed temporary file: {path}")
                except OSError as e:
                    logging.warning(f"Failed to remove temporary file {path}: {e}")


async def _read_lines(stream):
    buffer = b''
    while True:
        chunk = await stream.read(4096)
        if not chunk:
            break
        *lines, buffer = _LINE_SPLIT.split(buffer + chunk)
        for line in lines:
            if line:
                yield line.decode('utf-8', errors='replace')
    if buffer:
        yield buffer.decode('utf-8', errors='replace')


async def run_tool(name: str, cmd: List[str], on_line: Callable[[str], None]) -> None:
    """
    Run an external tool, feeding every output line to on_line as it arrives.

    stderr is merged into stdout: yt-dlp reports on stdout, ffmpeg on stderr.

    Raises:
        ProcessLaunchError: binary missing or not executable
        ProcessExitError: non-zero exit code
    """
    logging.info(f"Running {name}: {' '.join(cmd)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise ProcessLaunchError(f"Failed to execute {name}: {e}") from e

    tail = deque(maxlen=10)
    async for line in _read_lines(process.stdout):
        tail.append(line)
        on_line(line)

    returncode = await process.wait()
    if returncode != 0:
        logging.error(f"{name} exited with code {returncode}:\n" + "\n".join(tail))
        raise ProcessExitError(name, returncode)


def _forward_progress(stage: Stage, parse: Callable[[str], Optional[int]], emit: Emit):
    last = None

    def on_line(line):
        nonlocal last
        percent = parse(line)
        if percent is not None and percent != last:
            last = percent
            emit(ProgressEvent(stage, percent))

    return on_line


async def download_audio(url: str, ctx: PipelineContext, settings: PipelineSettings, emit: Emit) -> None:
    emit(ProgressEvent(Stage.DOWNLOADING))
    cmd = [
        settings.yt_dlp_binary,
        '-f', settings.fetch_format,
        '--newline',
        '-o', str(ctx.raw_audio),
        url,
    ]
    await run_tool('yt-dlp', cmd, _forward_progress(Stage.DOWNLOADING, parse_download_progress, emit))
    if not ctx.raw_audio.exists():
        raise FilesystemError(f"yt-dlp produced no file at {ctx.raw_audio}")


async def convert_audio(ctx: PipelineContext, settings: PipelineSettings, emit: Emit) -> None:
    emit(ProgressEvent(Stage.CONVERTING))
    cmd = [
        settings.ffmpeg_binary,
        '-nostdin', '-y',
        '-i', str(ctx.raw_audio),
        '-ar', str(transcriber.SAMPLE_RATE),  # 16kHz
        '-ac', '1',                           # Mono
        str(ctx.converted_audio),
    ]
    parser = TranscodeProgressParser()
    await run_tool('ffmpeg', cmd, _forward_progress(Stage.CONVERTING, parser.feed, emit))
    if not ctx.converted_audio.exists():
        raise FilesystemError(f"ffmpeg produced no file at {ctx.converted_audio}")


async def check_model(settings: PipelineSettings, emit: Emit) -> Path:
    emit(ProgressEvent(Stage.CHECKING_MODEL))
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(
        model_manager.ensure_model,
        settings.models_dir,
        url=settings.model_url,
        filename=settings.model_filename,
    ))


async def transcribe_audio(ctx: PipelineContext, settings: PipelineSettings, events: asyncio.Queue,
                           inference_executor: Optional[Executor] = None) -> str:
    events.put_nowait(ProgressEvent(Stage.TRANSCRIBING))
    loop = asyncio.get_running_loop()

    # Runs on the inference thread; hand events back to the loop that owns the queue
    def on_progress(percent):
        loop.call_soon_threadsafe(events.put_nowait, ProgressEvent(Stage.TRANSCRIBING, percent))

    segments = await loop.run_in_executor(inference_executor, functools.partial(
        transcriber.transcribe_file,
        str(ctx.converted_audio),
        str(ctx.model_path),
        settings.language,
        on_progress,
    ))

    transcript = transcriber.format_transcript(segments)
    logging.info(f"TRANSCRIPT:\n{transcript}")
    try:
        ctx.transcript_path.write_text(transcript, encoding='utf-8')
    except OSError as e:
        raise FilesystemError(f"Failed to write transcript {ctx.transcript_path}: {e}") from e
    logging.info(f"Transcript saved to: {ctx.transcript_path}")
    return transcript


async def process_job(url: str, settings: PipelineSettings, events: asyncio.Queue,
                      inference_executor: Optional[Executor] = None) -> Path:
    """
    Run download -> convert -> model check -> transcribe for one URL.

    Stages run strictly in order; the first error aborts the rest and propagates.
    Progress is published on `events` as ProgressEvent values.

    Returns:
        Path to the converted 16kHz mono WAV file.
    """
    logging.info(f"Processing job for URL: {url}")
    ctx = PipelineContext.create(settings.work_dir)
    succeeded = False
    try:
        await download_audio(url, ctx, settings, events.put_nowait)
        await convert_audio(ctx, settings, events.put_nowait)
        ctx.model_path = await check_model(settings, events.put_nowait)
        await transcribe_audio(ctx, settings, events, inference_executor)
        succeeded = True
        logging.info(f"✅ Job complete: {ctx.converted_audio}")
        return ctx.converted_audio
    finally:
        ctx.cleanup(succeeded)


async def run_pipeline(url: str, settings: PipelineSettings, on_status: Callable[[str], None],
                       inference_executor: Optional[Executor] = None) -> Path:
    """
    Run process_job with a consumer task that turns each event into a status string.

    The consumer is drained before this returns or raises, so no progress update can
    land after the caller writes the job's terminal status.
    """
    events = asyncio.Queue()

    async def consume():
        while True:
            event = await events.get()
            if event is None:
                return
            on_status(event.as_status())

    consumer = asyncio.ensure_future(consume())
    try:
        return await process_job(url, settings, events, inference_executor)
    finally:
        events.put_nowait(None)
        await consumer
