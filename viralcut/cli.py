import argparse
import json
import sys
import time
from pathlib import Path
from typing import Callable, Optional, TypeVar

from viralcut.config_manager import AppConfig, ConfigManager
from viralcut.exceptions import ViralCutError
from viralcut.jobs.models import ClipConfig, JobStatus
from viralcut.transcription.models import TranscriptSegment
from viralcut.utils.logger import setup_logger

T = TypeVar("T")

POLL_INTERVAL_SECONDS = 1.0


def _load_config(path: str) -> ConfigManager:
    try:
        return ConfigManager(path)
    except FileNotFoundError:
        print(f"Config not found at {path}, using defaults.", file=sys.stderr)
        return ConfigManager.from_config(AppConfig())


def _poll(read: Callable[[], Optional[T]]) -> T:
    while True:
        job = read()
        if job is not None and job.status != JobStatus.PROCESSING:
            return job
        time.sleep(POLL_INTERVAL_SECONDS)


def cmd_detect(args: argparse.Namespace, config: ConfigManager) -> int:
    from viralcut.intelligence.detector import MomentDetector

    raw = json.loads(Path(args.transcript).read_text(encoding="utf-8"))
    segments = [TranscriptSegment(**item) for item in raw]
    moments = MomentDetector(config).detect(segments)
    print(json.dumps([m.model_dump() for m in moments], indent=2, ensure_ascii=False))
    return 0


def cmd_process(args: argparse.Namespace, config: ConfigManager) -> int:
    from viralcut.service import build_service

    service = build_service(config)
    try:
        source = Path(args.source)
        if source.is_file():
            with open(source, "rb") as f:
                job = service.submit_upload(source.name, f)
        else:
            job = service.submit_url(args.source)

        ingestion = _poll(lambda: service.get_ingestion(job.id))
        if ingestion.status == JobStatus.FAILED:
            print(f"Ingestion failed: {ingestion.error}", file=sys.stderr)
            return 1

        moments = ingestion.result.moments[: args.top]
        if not moments:
            print("No viral moments found.")
            return 0

        clip_config = ClipConfig(
            format=args.format,
            add_captions=not args.no_captions,
            add_emojis=not args.no_emojis,
            add_zoom_pan=not args.no_zoom,
        )
        clip_job = service.submit_render(job.id, [m.id for m in moments], clip_config)
        finished = _poll(lambda: service.get_clip_job(clip_job.id))
        print(json.dumps([c.model_dump(mode="json") for c in finished.result or []], indent=2, ensure_ascii=False))
        return 0
    finally:
        service.runner.shutdown(wait=True)


def cmd_serve(args: argparse.Namespace, config: ConfigManager) -> int:
    from backend.server import main as serve

    serve(config)
    return 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="viralcut CLI")
    parser.add_argument("--config", default="config/settings.yaml", help="Path to settings.yaml")
    parser.add_argument("--log-level", default=None, help="Console log level (defaults to logging.level)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect_parser = subparsers.add_parser("detect", help="Detect viral moments in a transcript JSON file")
    detect_parser.add_argument("transcript", help="JSON list of {text, start, end} segments")

    process_parser = subparsers.add_parser("process", help="Ingest a URL or file and render its best moments")
    process_parser.add_argument("source", help="YouTube URL or path to a local video/audio file")
    process_parser.add_argument("--top", type=int, default=3, help="Number of moments to render")
    process_parser.add_argument(
        "--format",
        choices=["9:16", "1:1", "16:9"],
        default=None,
        help="Clip format (defaults to rendering.default_format)",
    )
    process_parser.add_argument("--no-captions", action="store_true", help="Skip subtitle burn-in")
    process_parser.add_argument("--no-emojis", action="store_true", help="Skip caption emoji")
    process_parser.add_argument("--no-zoom", action="store_true", help="Skip the zoom/pan effect")

    subparsers.add_parser("serve", help="Run the HTTP API")

    args = parser.parse_args(argv)
    config = _load_config(args.config)
    setup_logger(log_dir=config.paths.log_dir, cfg=config.logging, level=args.log_level)

    commands = {"detect": cmd_detect, "process": cmd_process, "serve": cmd_serve}
    try:
        return commands[args.command](args, config)
    except ViralCutError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
