#!/usr/bin/env python3
"""
Knee extension coach: live (webcam) or offline (video replay).
Usage:
  Live:    python run.py --live [--camera 0] [--side right]
  Offline: python run.py --video path/to/video.mp4
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys

from dotenv import load_dotenv

from kneesense.config import Settings
from kneesense.io_stream import video_frames
from kneesense.live import run_live_pipeline
from kneesense.pose import create_pose_detector, process_frame
from kneesense.session import STATUS_TRACKING, KneeSession

logger = logging.getLogger("kneesense.run")


def run_offline(video_path: str, settings: Settings) -> int:
    """Replay a video file through a session; logs every completed rep."""
    detector = create_pose_detector()
    session = KneeSession(settings)
    undetected = 0
    try:
        for frame_bgr, frame_idx, ts in video_frames(video_path):
            result = session.process_frame(process_frame(frame_bgr, detector), ts)
            if result.status != STATUS_TRACKING:
                undetected += 1
            for event in result.events:
                if event.rep is not None:
                    logger.info("frame %s t=%.2fs %s: %s [%s]",
                                frame_idx, ts, event.channel.value, event.text, event.tier.value)
    finally:
        detector.close()
    logger.info("offline: %s frames, %s without a usable leg", session.frames, undetected)
    print(f"Offline done. Reps: {session.rep_count}.")
    return session.rep_count


def main() -> None:
    load_dotenv()
    ap = argparse.ArgumentParser(description="Knee extension rep counter: live webcam or offline video")
    ap.add_argument("--video", type=str, default=None, help="Path to video file (offline mode)")
    ap.add_argument("--live", action="store_true", help="Use live webcam")
    ap.add_argument("--camera", type=int, default=0, help="Camera device id (default 0)")
    ap.add_argument("--side", choices=("left", "right"), default=None, help="Leg to track (default from env, else right)")
    ap.add_argument("--log-level", type=str, default="INFO", help="Logging level (default INFO)")
    args = ap.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.live and args.video:
        print("Error: provide exactly one of --video or --live", file=sys.stderr)
        sys.exit(1)
    if not args.live and not args.video:
        print("Error: provide --video PATH or --live", file=sys.stderr)
        sys.exit(1)

    try:
        settings = Settings.from_env()
        if args.side:
            settings = dataclasses.replace(settings, side=args.side)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.live:
        run_live_pipeline(camera_id=args.camera, target_fps=20, settings=settings)
    else:
        if not os.path.isfile(args.video):
            print(f"Error: video file not found: {args.video}", file=sys.stderr)
            sys.exit(1)
        run_offline(args.video, settings)


if __name__ == "__main__":
    main()
