import os
import tempfile

VERSION = "1.0.0"

# Whisper "tiny" checkpoint, the same file whisper.load_model("tiny") fetches
DEFAULT_MODEL_URL = (
    "https://openaipublic.azureedge.net/main/whisper/models/"
    "65147644a518d12f04e32d6f3b26facc3f8dd46e5586e4b8b0c8f6ac7f37b46b/tiny.pt"
)


class Config:
    """Default settings, each one overridable from the environment."""

    HOST = os.environ.get('TRANSCRIBER_HOST', '0.0.0.0')
    PORT = int(os.environ.get('TRANSCRIBER_PORT', 14200))

    # Per-application data directory; the model cache lives in DATA_DIR/models
    DATA_DIR = os.environ.get(
        'TRANSCRIBER_DATA_DIR',
        os.path.join(os.path.expanduser('~'), '.url-transcriber')
    )
    WORK_DIR = os.environ.get('TRANSCRIBER_WORK_DIR', tempfile.gettempdir())

    YT_DLP_BINARY = os.environ.get('YT_DLP_BINARY', 'yt-dlp')
    FFMPEG_BINARY = os.environ.get('FFMPEG_BINARY', 'ffmpeg')
    FETCH_FORMAT = os.environ.get('FETCH_FORMAT', 'ba[ext=webm]')

    MODEL_URL = os.environ.get('MODEL_URL', DEFAULT_MODEL_URL)
    MODEL_FILENAME = os.environ.get('MODEL_FILENAME', 'tiny.pt')
    LANGUAGE = os.environ.get('TRANSCRIBE_LANGUAGE', 'vi')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
