"""
Main entry point for the HATCHSIGHT application.

Runs a vision pipeline over a camera, video file or still image and shows the
detected targets.

Usage:
    python main.py                          # Camera 0, pose pipeline
    python main.py --image target.jpg       # Replay a still image
    python main.py --pipeline skew          # Skew pair pipeline
    python main.py --pipeline crosshairs    # Crosshairs only
    python main.py --headless --frames 100  # No windows, log telemetry
"""

from __future__ import annotations

import argparse
import logging
import sys

from pipeline import CrosshairsPipeline, TargetPosePipeline
from skew import SkewPairPipeline
from ui import UserInterface
from utils import get_config, setup_logging, validate_config
from video import VideoProcessor

LOGGER = logging.getLogger(__name__)

PIPELINES = {
    "model3d": lambda config: TargetPosePipeline("Model3D Pipeline", config),
    "crosshairs": lambda config: CrosshairsPipeline("Crosshairs", config),
    "skew": lambda config: SkewPairPipeline("Skew Pipeline", config),
}


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="HATCHSIGHT - vision target pose estimation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", "-c", help="JSON configuration file")
    parser.add_argument("--image", help="Still image to replay as the frame source")
    parser.add_argument("--video", help="Video file to use as the frame source")
    parser.add_argument("--camera", type=int, help="Camera index (overrides config)")
    parser.add_argument(
        "--pipeline", choices=sorted(PIPELINES), default="model3d",
        help="Pipeline variant to run",
    )
    parser.add_argument("--headless", action="store_true", help="Do not open any windows")
    parser.add_argument("--frames", type=int, default=0, help="Stop after N frames (0 = run forever)")
    parser.add_argument("--verbose", "-V", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def log_telemetry(pipeline, frame_index: int):
    """Log the telemetry fields the pipeline reports for its latest result."""
    for rank, fields in enumerate(pipeline.telemetry()):
        values = " ".join(f"{key}={value:.3f}" for key, value in fields.items())
        LOGGER.info("frame %d target %d: %s", frame_index, rank, values)


def open_source(args, config) -> VideoProcessor:
    source = VideoProcessor(config)
    image_file = args.image or config.get("image_file")
    video_file = args.video or config.get("video_file")
    if image_file:
        ok = source.load_image_file(image_file)
    elif video_file:
        ok = source.load_video_file(video_file)
    else:
        ok = source.initialize()
    if not ok:
        raise RuntimeError("Could not open a frame source")
    return source


def run(args) -> int:
    config = get_config(args.config)
    if args.camera is not None:
        config["camera_id"] = args.camera
    if not validate_config(config):
        return 1

    source = open_source(args, config)
    pipeline = PIPELINES[args.pipeline](config)
    ui = None if args.headless else UserInterface(config)

    try:
        first = source.capture_frame()
        if first is None:
            LOGGER.error("Frame source produced no frames")
            return 1
        pipeline.initialize(first.shape[1], first.shape[0])
        if ui is not None and not ui.initialize():
            return 1

        frame = first
        frame_index = 0
        while frame is not None:
            if ui is None or not ui.paused:
                pipeline.process(frame)
                log_telemetry(pipeline, frame_index)
                frame_index += 1

            if ui is not None:
                ui.display_frame(pipeline.write_output(frame.copy()), pipeline.streams())
                if not ui.handle_events():
                    break

            if args.frames and frame_index >= args.frames:
                break
            frame = source.capture_frame()
    finally:
        source.cleanup()
        if ui is not None:
            ui.cleanup()

    LOGGER.info("Processed %d frames", frame_index)
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    LOGGER.info("Starting HATCHSIGHT...")
    try:
        status = run(args)
    except RuntimeError as e:
        LOGGER.error("%s", e)
        status = 1

    sys.exit(status)


if __name__ == "__main__":
    main()
