import argparse
import asyncio
import logging
import sys

import cv2

from pipeline.config import DemoConfig, load_config
from pipeline.memeify import memeify
from pipeline.runner import init_detector, run_demo

logger = logging.getLogger("memeface")


def build_parser():
    parser = argparse.ArgumentParser(prog="memeface", description="Meme-face video compositor demo")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--detector", choices=["mesh", "landmarker"], help="Face detector backend")
    parser.add_argument("--model-base", help="Directory or URL holding detector model assets")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Capture, memeify and play the composited video")
    run.add_argument("--photo", help="Use this image instead of the camera")
    run.add_argument("--camera", type=int, help="Camera index")
    run.add_argument("--video", help="Background video file")
    run.add_argument("--track", help="Head-track JSON path or URL")
    run.add_argument("--duration", type=float, help="Stop after N seconds")
    run.add_argument("--no-window", action="store_true", help="Do not open a display window")

    still = sub.add_parser("memeify", help="Draw meme features on a still image")
    still.add_argument("input", help="Input image")
    still.add_argument("output", help="Output image")
    return parser


def configure(args) -> DemoConfig:
    config = load_config(args.config) if args.config else DemoConfig()
    if args.detector:
        config.detector.backend = args.detector
    if args.model_base:
        config.detector.model_base = args.model_base

    if args.command == "run":
        if args.camera is not None:
            config.capture.camera_index = args.camera
        if args.video:
            config.playback.video_path = args.video
        if args.track:
            config.playback.head_track_source = args.track
        if args.duration is not None:
            config.duration = args.duration
        if args.no_window:
            config.show_window = False
    return config


def read_image(path):
    img = cv2.imread(path)
    if img is None:
        raise SystemExit(f"Could not read image {path}")
    return img


async def memeify_file(config, src, dst):
    detector = await init_detector(config)
    try:
        out = await memeify(read_image(src), detector)
    finally:
        detector.close()
    if not cv2.imwrite(dst, out):
        raise SystemExit(f"Could not write image {dst}")
    logger.info("Wrote %s", dst)


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = configure(args)

    if args.command == "memeify":
        asyncio.run(memeify_file(config, args.input, args.output))
        return 0

    snapshot = read_image(args.photo) if args.photo else None
    session = asyncio.run(run_demo(config, snapshot=snapshot))
    return 0 if session is not None else 1


if __name__ == "__main__":
    sys.exit(main())
