# scripts/dev_biplane_offline.py
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import numpy as np
import cv2

# --- PYTHONPATH for local run ---
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.motion import (
    BiplaneOrchestrator,
    CollectingSink,
    EchoEngine,
    SteppingScheduler,
    View,
    VideoFileSource,
    ViewSession,
)
from app.motion.debug_draw import render_overlay
from app.services.echo_service import engine_config_from_settings, parse_roi


def save_image(path: Path, img: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    ok = cv2.imwrite(str(path), img)
    if not ok:
        raise RuntimeError(f"Failed to write image: {path}")


def draw_strain_plot(
    values: list[float],
    out_path: Path,
    title: str = "strain",
    width: int = 900,
    height: int = 420,
) -> None:
    """
    Polyline of the strain history on a white canvas, with the zero line.
    """
    H = height
    W = width
    canvas = np.full((H, W, 3), 255, dtype=np.uint8)

    if not values:
        cv2.putText(canvas, f"{title}: no samples", (10, 28), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 0, 0), 2)
        save_image(out_path, canvas)
        return

    sig = np.asarray(values, dtype=np.float32)
    mn, mx = min(float(sig.min()), 0.0), max(float(sig.max()), 0.0)
    if mx - mn < 1e-6:
        mx = mn + 1.0

    def to_y(v: float) -> int:
        return int((1.0 - (v - mn) / (mx - mn)) * (H - 1))

    cv2.line(canvas, (0, to_y(0.0)), (W - 1, to_y(0.0)), (200, 200, 200), 1)

    n = sig.size
    pts = np.array(
        [(int(i * (W - 1) / max(1, n - 1)), to_y(float(v))) for i, v in enumerate(sig)],
        dtype=np.int32,
    )
    cv2.polylines(canvas, [pts], isClosed=False, color=(0, 0, 0), thickness=2)

    cv2.putText(
        canvas,
        f"{title}  (min={float(sig.min()):.2f}, max={float(sig.max()):.2f})",
        (10, 28),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.8,
        (0, 0, 0),
        2,
        cv2.LINE_AA,
    )

    save_image(out_path, canvas)


def main() -> None:
    if len(sys.argv) < 5:
        print("Usage: python scripts/dev_biplane_offline.py <a4c_video> <a2c_video> <a4c_roi> <a2c_roi> [out_dir]")
        print('  ROI format: "x,y,w,h" in 600x450 logical coordinates')
        sys.exit(1)

    paths = {View.A4C: Path(sys.argv[1]), View.A2C: Path(sys.argv[2])}
    rois = {View.A4C: sys.argv[3], View.A2C: sys.argv[4]}
    out_dir = Path(sys.argv[5]) if len(sys.argv) >= 6 else Path("tmp/biplane_debug")
    out_dir.mkdir(parents=True, exist_ok=True)

    settings = get_settings()
    configure_logging(settings)

    print("=== Biplane offline debug ===")
    for view, p in paths.items():
        print(f"{view.value}: {p}  roi={rois[view]}")
    print(f"out:  {out_dir}")

    sessions = {view: ViewSession(view=view, roi=parse_roi(rois[view], view)) for view in paths}
    sink = CollectingSink()
    orchestrator = BiplaneOrchestrator(
        EchoEngine(engine_config_from_settings(settings)),
        sink=sink,
        scheduler=SteppingScheduler(),
        fps=settings.batch_fps,
    )

    with VideoFileSource(str(paths[View.A4C])) as a4c, VideoFileSource(str(paths[View.A2C])) as a2c:
        result = asyncio.run(orchestrator.run(sessions, {View.A4C: a4c, View.A2C: a2c}))

    for view, session in sessions.items():
        overlay = render_overlay(session.buffer.current, session.points, session.mask, session.roi)
        save_image(out_dir / f"{view.value}_01_last_frame_overlay.png", overlay)
        draw_strain_plot(
            session.history.values(),
            out_dir / f"{view.value}_02_strain.png",
            title=f"{view.value} aggregate strain (%)",
        )

    print("Result:")
    print(f" - EF (biplane): {result.ejection_fraction:.1f}%")
    print(f" - GLS:          {result.gls:.1f}%")
    for m in result.views:
        print(
            f" - {m.view.value}: ef={m.ejection_fraction:.1f}% peak={m.peak_strain:.1f}% "
            f"points={m.point_count} frames={m.frames_processed} ticks={sink.tick_counts.get(m.view, 0)}"
        )
    print(" - segments: " + ", ".join(f"{v:.1f}" for v in result.segmental_map))

    print("Saved:")
    for p in sorted(out_dir.glob("*.png")):
        print(f" - {p}")


if __name__ == "__main__":
    main()
