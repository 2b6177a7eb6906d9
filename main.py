import argparse
import asyncio
import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor

from config import Config
from errors import PipelineError
from processor import PipelineSettings, run_pipeline, transcript_path_for


def main():
    parser = argparse.ArgumentParser(
        description="URL Transcriber: downloads a media URL, converts it to 16kHz mono and transcribes it."
    )
    parser.add_argument("url", help="Media URL to transcribe.")
    parser.add_argument(
        "--work-dir",
        type=str,
        default=Config.WORK_DIR,
        help=f"Directory for intermediate files (default: {Config.WORK_DIR}).",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=Config.DATA_DIR,
        help=f"Application data directory holding models/ (default: {Config.DATA_DIR}).",
    )
    parser.add_argument(
        "--language",
        type=str,
        default=Config.LANGUAGE,
        help=f"Transcription language code, empty for auto-detect (default: {Config.LANGUAGE}).",
    )
    parser.add_argument(
        "--format",
        type=str,
        default=Config.FETCH_FORMAT,
        help=f"yt-dlp format selector (default: {Config.FETCH_FORMAT}).",
    )
    parser.add_argument(
        "--yt-dlp",
        type=str,
        default=Config.YT_DLP_BINARY,
        help="Path to the yt-dlp binary.",
    )
    parser.add_argument(
        "--ffmpeg",
        type=str,
        default=Config.FFMPEG_BINARY,
        help="Path to the ffmpeg binary.",
    )

    args = parser.parse_args()

    settings = PipelineSettings(
        work_dir=args.work_dir,
        models_dir=os.path.join(args.data_dir, "models"),
        yt_dlp_binary=args.yt_dlp,
        ffmpeg_binary=args.ffmpeg,
        fetch_format=args.format,
        model_url=Config.MODEL_URL,
        model_filename=Config.MODEL_FILENAME,
        language=args.language or None,
    )

    logging.info(f"Processing {args.url}")
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference") as inference:
        try:
            result = asyncio.run(run_pipeline(args.url, settings, print, inference))
        except PipelineError as e:
            print(f"failed: {e}")
            return 1

    print(transcript_path_for(result).read_text(encoding="utf-8"))
    print(f"completed: {result}")
    logging.info("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
