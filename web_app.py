from __future__ import annotations

import asyncio
import base64
import binascii
import concurrent.futures
import json
import logging
import time
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

# Ensure rep logging is visible when running under uvicorn
logging.getLogger("kneesense.reps").setLevel(logging.INFO)
logging.getLogger("kneesense.session").setLevel(logging.INFO)

from fastapi import FastAPI
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

import cv2
import numpy as np

from kneesense.config import Settings
from kneesense.pose import create_pose_detector, keypoints_from_payload, process_frame
from kneesense.session import KneeSession

logger = logging.getLogger("kneesense.web")

app = FastAPI(title="KneeSense")

# Thread pool for server-side pose so the event loop can respond to pings
_LIVE_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="live_pose")
_DETECTOR = None


def _get_detector():
    """Lazily create the shared MediaPipe detector (only used by the worker thread)."""
    global _DETECTOR
    if _DETECTOR is None:
        _DETECTOR = create_pose_detector()
    return _DETECTOR


def _decode_image(image_data: str) -> Optional[np.ndarray]:
    if image_data.startswith("data:"):
        _, sep, image_data = image_data.partition(",")
        if not sep:
            return None
    try:
        img_bytes = base64.b64decode(image_data)
    except (binascii.Error, ValueError):
        return None
    np_arr = np.frombuffer(img_bytes, np.uint8)
    if np_arr.size == 0:
        return None
    return cv2.imdecode(np_arr, cv2.IMREAD_COLOR)


def _detect_sync(frame_bgr: np.ndarray):
    return process_frame(frame_bgr, _get_detector())


def _summary(session: KneeSession) -> dict[str, Any]:
    last = session.machine.last_rep
    return {
        "type": "summary",
        "rep_count": session.rep_count,
        "frames": session.frames,
        "last_rep": last.to_dict() if last is not None else None,
    }


_INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>KneeSense</title>
    <style>
      body { font-family: sans-serif; background: #07090d; color: #f0f4f8; text-align: center; }
      #stage { position: relative; display: inline-block; }
      video { display: none; }
      .ok { color: #4ade80; } .warn { color: #fbbf24; } .bad { color: #f87171; }
      p { margin: 6px 0; }
    </style>
    <script src="https://cdn.jsdelivr.net/npm/@tensorflow/tfjs-core"></script>
    <script src="https://cdn.jsdelivr.net/npm/@tensorflow/tfjs-converter"></script>
    <script src="https://cdn.jsdelivr.net/npm/@tensorflow/tfjs-backend-webgl"></script>
    <script src="https://cdn.jsdelivr.net/npm/@tensorflow-models/pose-detection"></script>
  </head>
  <body>
    <h2>Knee extension coach</h2>
    <div id="stage"><video id="video" playsinline></video><canvas id="canvas"></canvas></div>
    <p id="angle">Angle: --°</p>
    <p id="reps">Reps: 0</p>
    <p id="angleFeedback">Loading model...</p>
    <p id="speedFeedback"></p>
    <script>
      const video = document.getElementById("video");
      const canvas = document.getElementById("canvas");
      const ctx = canvas.getContext("2d");
      const show = (id, fb) => {
        const el = document.getElementById(id);
        el.textContent = fb.text; el.className = fb.tier;
      };
      async function main() {
        const stream = await navigator.mediaDevices.getUserMedia({video: {facingMode: "user"}, audio: false});
        video.srcObject = stream;
        await new Promise(r => video.onloadedmetadata = r);
        video.play();
        canvas.width = video.videoWidth; canvas.height = video.videoHeight;
        await tf.setBackend("webgl"); await tf.ready();
        const detector = await poseDetection.createDetector(poseDetection.SupportedModels.MoveNet, {
          modelType: poseDetection.movenet.modelType.SINGLEPOSE_LIGHTNING, enableSmoothing: true});
        const proto = location.protocol === "https:" ? "wss" : "ws";
        const ws = new WebSocket(`${proto}://${location.host}/ws/live`);
        let busy = false;
        ws.onmessage = (ev) => {
          const r = JSON.parse(ev.data);
          busy = false;
          if (r.type === "summary") return;
          document.getElementById("angle").textContent = r.angle_text;
          document.getElementById("reps").textContent = `Reps: ${r.rep_count}`;
          show("angleFeedback", r.angle_feedback);
          show("speedFeedback", r.speed_feedback);
        };
        async function loop() {
          const poses = await detector.estimatePoses(video, {maxPoses: 1, flipHorizontal: true});
          const pose = poses[0] || null;
          ctx.drawImage(video, 0, 0, canvas.width, canvas.height);
          if (pose) pose.keypoints.forEach(k => {
            if (k.score > 0.3) { ctx.beginPath(); ctx.arc(k.x, k.y, 4, 0, 2 * Math.PI); ctx.fillStyle = "cyan"; ctx.fill(); }
          });
          if (ws.readyState === WebSocket.OPEN && !busy) {
            busy = true;
            ws.send(JSON.stringify({type: "pose", keypoints: pose ? pose.keypoints : null,
                                    timestamp: performance.now() / 1000}));
          }
          requestAnimationFrame(loop);
        }
        ws.onopen = loop;
      }
      main().catch(err => {
        document.getElementById("angle").textContent = "Error: " + err.message;
        show("angleFeedback", {text: "Error: " + err.message, tier: "bad"});
      });
    </script>
  </body>
</html>
"""


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    return HTMLResponse(_INDEX_HTML)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.websocket("/ws/live")
async def live_socket(websocket: WebSocket) -> None:
    """
    One KneeSession per connection. Messages:
      {"type": "pose", "keypoints": [...], "timestamp": t}  client-side pose
      {"image": "<base64 jpeg>", "timestamp": t}            server-side pose
      {"type": "stop"}                                      summary, then close
    """
    await websocket.accept()
    session = KneeSession(Settings.from_env())
    t0 = time.perf_counter()
    logger.info("live: session started")
    try:
        while True:
            msg = await websocket.receive_text()
            try:
                payload = json.loads(msg)
            except json.JSONDecodeError:
                logger.debug("live: dropping non-JSON message")
                continue
            if not isinstance(payload, dict):
                continue
            if payload.get("type") == "stop":
                logger.info("live: stop received, rep_count=%s", session.rep_count)
                await websocket.send_text(json.dumps(_summary(session)))
                await websocket.close()
                return

            ts = payload.get("timestamp")
            if not isinstance(ts, (int, float)) or isinstance(ts, bool):
                ts = time.perf_counter() - t0

            if payload.get("type") == "pose":
                pose = keypoints_from_payload(payload.get("keypoints"))
            elif payload.get("image"):
                frame_bgr = _decode_image(str(payload["image"]))
                if frame_bgr is None:
                    continue
                pose = await asyncio.get_running_loop().run_in_executor(
                    _LIVE_EXECUTOR, _detect_sync, frame_bgr
                )
            else:
                continue

            result = session.process_frame(pose, float(ts))
            if session.frames % 60 == 0:
                logger.info("live: frame %s (rep_count=%s)", session.frames, session.rep_count)
            await websocket.send_text(json.dumps(result.to_dict()))
    except WebSocketDisconnect:
        logger.info("live: client disconnected (frames=%s, rep_count=%s)", session.frames, session.rep_count)
        return
    except Exception as e:
        # Normal client close (e.g. code 1000) can surface as ConnectionClosedError from websockets
        if "ConnectionClosed" in type(e).__name__ or "1000" in str(e):
            logger.info("live: connection closed (frames=%s, rep_count=%s)", session.frames, session.rep_count)
            return
        raise


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
