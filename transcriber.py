import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np
import whisper
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from errors import EmptyInputError, FilesystemError, InferenceError

SAMPLE_RATE = 16000
# Inference runs window by window so progress can be reported between windows
WINDOW_SECONDS = 300


@dataclass
class TranscriptSegment:
    start_centis: int
    end_centis: int
    text: str


def format_timestamp(centis: int) -> str:
    """Convert centiseconds to M:SS format."""
    seconds = centis // 100
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_transcript(segments: List[TranscriptSegment]) -> str:
    lines = [
        f"[{format_timestamp(s.start_centis)} -> {format_timestamp(s.end_centis)}] {s.text}"
        for s in segments
    ]
    return "\n".join(lines).strip()


def load_audio(audio_path: str) -> np.ndarray:
    """Load an audio file as mono 16kHz float32 samples normalized to [-1, 1]."""
    logging.info(f"Loading audio from {audio_path}")
    try:
        audio = AudioSegment.from_file(audio_path)
    except (OSError, CouldntDecodeError) as e:
        raise FilesystemError(f"Failed to open audio file {audio_path}: {e}") from e

    audio = audio.set_channels(1).set_frame_rate(SAMPLE_RATE)
    scale = float(1 << (8 * audio.sample_width - 1))
    return np.array(audio.get_array_of_samples(), dtype=np.float32) / scale


def transcribe_samples(samples: np.ndarray, model_path: str, language: Optional[str] = None,
                       on_progress: Optional[Callable[[int], None]] = None) -> List[TranscriptSegment]:
    """
    Transcribe mono 16kHz samples with a Whisper checkpoint.

    The model is loaded once per call. Decoding is greedy with a single candidate
    (temperature 0, no beam search, no fallback) so the same input gives the same text.

    Args:
        samples: float32 samples in [-1, 1]
        model_path: Path to the Whisper checkpoint file
        language: Language code, or None to let Whisper detect it
        on_progress: Called with an integer percent after each inference window

    Returns:
        Segments in chronological order.
    """
    if samples is None or len(samples) == 0:
        raise EmptyInputError("Audio file is empty")

    logging.info(f"Loading model from {model_path}")
    try:
        model = whisper.load_model(str(model_path), device="cpu")
    except Exception as e:
        raise InferenceError(f"Failed to load model: {e}") from e

    samples = np.asarray(samples, dtype=np.float32)
    total = len(samples)
    window = WINDOW_SECONDS * SAMPLE_RATE
    logging.info(f"Starting transcription on {total} samples...")

    segments = []
    for offset in range(0, total, window):
        chunk = samples[offset:offset + window]
        try:
            result = model.transcribe(
                chunk,
                language=language,
                temperature=0.0,
                beam_size=None,
                best_of=None,
                fp16=False,
                verbose=None,
            )
        except Exception as e:
            raise InferenceError(f"Failed to run whisper: {e}") from e

        base = offset * 100 // SAMPLE_RATE
        for seg in result.get("segments", []):
            segments.append(TranscriptSegment(
                start_centis=base + int(round(seg["start"] * 100)),
                end_centis=base + int(round(seg["end"] * 100)),
                text=seg["text"].strip(),
            ))

        # Detect once on the first window so later windows keep the same language
        if language is None:
            language = result.get("language")
            logging.info(f"Detected language: {language}")

        if on_progress:
            on_progress(int((offset + len(chunk)) * 100 / total))

    logging.info(f"Transcription completed. Total segments: {len(segments)}")
    return segments


def transcribe_file(audio_path: str, model_path: str, language: Optional[str] = None,
                    on_progress: Optional[Callable[[int], None]] = None) -> List[TranscriptSegment]:
    return transcribe_samples(load_audio(audio_path), model_path, language, on_progress)
