class PipelineError(Exception):
    """Base error for a transcription job. Fatal to the job, never to the server."""


class ProcessLaunchError(PipelineError):
    """Raised when an external binary is missing or cannot be spawned."""


class ProcessExitError(PipelineError):
    """Raised when yt-dlp or ffmpeg exits with a non-zero code."""

    def __init__(self, tool: str, returncode: int):
        super().__init__(f"{tool} failed (exit code {returncode})")
        self.tool = tool
        self.returncode = returncode


class FilesystemError(PipelineError):
    """Raised when a directory or file cannot be created or read."""


class AssetUnavailableError(PipelineError):
    """Raised when the model asset cannot be made present in the cache."""


class NetworkError(AssetUnavailableError):
    """Raised when the model download fails or returns a bad HTTP status."""


class AssetDirectoryError(AssetUnavailableError, FilesystemError):
    """Raised when the model cache directory cannot be created or written."""


class InferenceError(PipelineError):
    """Raised when the Whisper model fails to load or decode."""


class EmptyInputError(PipelineError, ValueError):
    """Raised when transcription is requested for an empty sample buffer."""
