"""
Progress extraction for the external tools driven by the pipeline.

yt-dlp and ffmpeg report progress as free-form text. The helpers here turn one line
of that text into an optional integer percentage. They never raise: a line that does
not match is simply not a progress line.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

DOWNLOAD_MARKER = '[download]'

_DURATION_RE = re.compile(r'^\s*(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)\s*$')
_DURATION_LINE_RE = re.compile(r'Duration:\s*(\d+:\d{1,2}:\d{1,2}(?:\.\d+)?)')
_TIME_RE = re.compile(r'time=\s*(\d+:\d{1,2}:\d{1,2}(?:\.\d+)?)')


class Stage(Enum):
    DOWNLOADING = 'downloading'
    CONVERTING = 'converting'
    CHECKING_MODEL = 'checking-model'
    TRANSCRIBING = 'transcribing'


@dataclass(frozen=True)
class ProgressEvent:
    stage: Stage
    percent: Optional[int] = None

    def as_status(self) -> str:
        """Flatten into the job status string, e.g. 'downloading 45%'."""
        if self.percent is None:
            return self.stage.value
        return f"{self.stage.value} {self.percent}%"


def parse_download_progress(line: str) -> Optional[int]:
    """
    Extract the percentage from a yt-dlp progress line.

    '[download]  45.6% of 10.00MiB at 1.2MiB/s ETA 00:05' -> 45
    '[download] Destination: /tmp/x.webm' -> None
    """
    marker_at = line.find(DOWNLOAD_MARKER)
    if marker_at < 0:
        return None

    for token in line[marker_at + len(DOWNLOAD_MARKER):].split():
        if not token.endswith('%'):
            continue
        try:
            value = float(token[:-1])
        except ValueError:
            return None
        return max(0, min(100, int(value)))
    return None


def parse_duration(value: str) -> float:
    """Parse 'HH:MM:SS.fraction' into seconds. Anything else gives 0.0."""
    match = _DURATION_RE.match(value or '')
    if not match:
        return 0.0
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class TranscodeProgressParser:
    """
    Tracks one ffmpeg run.

    ffmpeg prints the input 'Duration:' once in its banner, then keeps redrawing a
    status line containing 'time='. Percent is only known once the duration is.
    """

    def __init__(self):
        self.total_seconds = 0.0

    def feed(self, line: str) -> Optional[int]:
        duration = _DURATION_LINE_RE.search(line)
        if duration:
            self.total_seconds = parse_duration(duration.group(1))
            return None

        current = _TIME_RE.search(line)
        if not current or self.total_seconds <= 0:
            return None

        percent = int(parse_duration(current.group(1)) / self.total_seconds * 100)
        return max(0, min(100, percent))
