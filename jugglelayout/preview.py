"""
preview.py

Sampling, plotting and export for a laid-out pattern.

- sample(): evaluate every path, hand and juggler over a time window
- plot_timeseries(): stacked x/y/z plot of one path against its nearest hand
- animate(): 3D playback of the sampled pattern
- export_csv(): one row per sample

Keys (animate):
  space : play/pause
  left  : step backward
  right : step forward
  r     : restart
  esc   : close

Needs matplotlib (the `preview` extra).
"""

from __future__ import annotations

import csv
import logging
import os
from typing import Dict, Optional

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation

from .config import LOGGER_NAME
from .layout import LaidoutPattern
from .pattern import LEFT_HAND, RIGHT_HAND, hand_name

logger = logging.getLogger(LOGGER_NAME)


# ----------------------------
# Sampling
# ----------------------------

def sample(lp: LaidoutPattern, dt: float = 0.01, t0: Optional[float] = None, t1: Optional[float] = None) -> Dict:
    """
    Evaluate the laid-out pattern on a regular grid over [t0, t1).

    Defaults to one loop. Returns
      {"t": (N,), "paths": {p: (N,3)}, "hands": {(j, hand): (N,3)}, "jugglers": {j: (N,3)}}
    """
    if dt <= 0:
        raise ValueError("dt must be > 0")
    if t0 is None:
        t0 = lp.loop_start_time
    if t1 is None:
        t1 = lp.loop_end_time
    if t1 <= t0:
        raise ValueError("t1 must be > t0")

    ts = np.arange(t0, t1, dt)
    pat = lp.pattern
    out = {"t": ts, "paths": {}, "hands": {}, "jugglers": {}}

    for p in range(1, pat.num_paths + 1):
        P = np.zeros((len(ts), 3))
        for i, t in enumerate(ts):
            P[i] = lp.path_coordinate(p, float(t))
        out["paths"][p] = P

    for j in range(1, pat.num_jugglers + 1):
        for hand in (LEFT_HAND, RIGHT_HAND):
            H = np.zeros((len(ts), 3))
            for i, t in enumerate(ts):
                H[i] = lp.hand_coordinate(j, hand, float(t))
            out["hands"][(j, hand)] = H

        J = np.zeros((len(ts), 3))
        for i, t in enumerate(ts):
            J[i] = lp.juggler_position(j, float(t))
        out["jugglers"][j] = J

    logger.info(f"[PREVIEW] sampled {len(ts)} points over [{t0:.3f}, {t1:.3f}) s")
    return out


# ----------------------------
# Plots
# ----------------------------

def _nearest_hand(sim: Dict, path: int):
    P = sim["paths"][path]
    best, best_d = None, None
    for key, H in sim["hands"].items():
        d = float(np.min(np.linalg.norm(H - P, axis=1)))
        if best_d is None or d < best_d:
            best, best_d = key, d
    return best


def plot_timeseries(sim: Dict, path: int = 1, title: Optional[str] = None):
    if path not in sim["paths"]:
        raise ValueError(f"path={path} not found")

    t = sim["t"]
    P = sim["paths"][path]
    key = _nearest_hand(sim, path)

    fig, axs = plt.subplots(3, 1, sharex=True, figsize=(11, 8))
    if key is not None:
        j, hand = key
        axs[0].set_title(title or f"Path {path} vs juggler {j} {hand_name(hand)} hand")
    else:
        axs[0].set_title(title or f"Path {path}")

    for k, label in enumerate(("x", "y", "z")):
        axs[k].plot(t, P[:, k], label=f"path {label}")
        if key is not None:
            H = sim["hands"][key]
            axs[k].plot(t, H[:, k], linestyle="--", label=f"hand {label}")
        axs[k].set_ylabel(f"{label} [cm]")
        axs[k].grid(True)
        axs[k].legend(loc="upper right")

    axs[-1].set_xlabel("time [s]")
    fig.tight_layout()
    return fig


def animate(sim: Dict, stride: int = 1, trail: int = 50):
    ts = sim["t"][::stride]
    path_ids = sorted(sim["paths"].keys())
    hand_ids = sorted(sim["hands"].keys())

    P = {p: sim["paths"][p][::stride] for p in path_ids}
    H = {h: sim["hands"][h][::stride] for h in hand_ids}
    J = {j: arr[::stride] for j, arr in sim.get("jugglers", {}).items()}

    fig = plt.figure()
    ax = fig.add_subplot(111, projection="3d")
    ax.set_title("Pattern preview")

    # axis bounds from all trajectories, cubic aspect
    pts = np.vstack([*sim["paths"].values(), *sim["hands"].values()])
    lo = np.min(pts, axis=0) - 5.0
    hi = np.max(pts, axis=0) + 5.0
    c = 0.5 * (lo + hi)
    half = 0.5 * float(np.max(hi - lo))
    ax.set_xlim(c[0] - half, c[0] + half)
    ax.set_ylim(c[1] - half, c[1] + half)
    ax.set_zlim(c[2] - half, c[2] + half)

    prop_markers = {p: ax.plot([], [], [], marker="o", linestyle="None")[0] for p in path_ids}
    prop_trails = {p: ax.plot([], [], [], linewidth=1.0, alpha=0.7)[0] for p in path_ids}
    hand_markers = {h: ax.plot([], [], [], marker="x", linestyle="None")[0] for h in hand_ids}
    body_markers = {j: ax.plot([], [], [], marker="s", color="gray", linestyle="None")[0] for j in J}

    time_text = ax.text2D(0.02, 0.95, "", transform=ax.transAxes)

    state = {"paused": False, "i": 0}

    def set_artists(i: int):
        time_text.set_text(f"t = {float(ts[i]):.3f} s")

        for p in path_ids:
            pos = P[p][i]
            prop_markers[p].set_data([pos[0]], [pos[1]])
            prop_markers[p].set_3d_properties([pos[2]])

            k0 = max(0, i - trail)
            tr = P[p][k0:i + 1]
            prop_trails[p].set_data(tr[:, 0], tr[:, 1])
            prop_trails[p].set_3d_properties(tr[:, 2])

        for h in hand_ids:
            pos = H[h][i]
            hand_markers[h].set_data([pos[0]], [pos[1]])
            hand_markers[h].set_3d_properties([pos[2]])

        for j, arr in J.items():
            body_markers[j].set_data([arr[i][0]], [arr[i][1]])
            body_markers[j].set_3d_properties([arr[i][2]])

        return [time_text, *prop_markers.values(), *prop_trails.values(), *hand_markers.values(),
                *body_markers.values()]

    def on_key(event):
        if event.key == " ":
            state["paused"] = not state["paused"]
        elif event.key == "right":
            state["i"] = min(state["i"] + 1, len(ts) - 1)
            set_artists(state["i"])
            fig.canvas.draw_idle()
        elif event.key == "left":
            state["i"] = max(state["i"] - 1, 0)
            set_artists(state["i"])
            fig.canvas.draw_idle()
        elif event.key == "r":
            state["i"] = 0
        elif event.key == "escape":
            plt.close(fig)

    fig.canvas.mpl_connect("key_press_event", on_key)

    def update(_frame):
        if not state["paused"]:
            # the pattern is periodic: wrap around
            state["i"] = (state["i"] + 1) % len(ts)
        return set_artists(state["i"])

    ani = FuncAnimation(fig, update, interval=20, blit=False, cache_frame_data=False)
    return fig, ani


# ----------------------------
# CSV export
# ----------------------------

def export_csv(sim: Dict, out_path: str) -> str:
    """
    Write the sampled pattern as CSV:
    t, p1_x, p1_y, p1_z, ..., j1_left_x, ..., j1_right_z, ...
    """
    path_ids = sorted(sim["paths"].keys())
    hand_ids = sorted(sim["hands"].keys())

    header = ["t"]
    for p in path_ids:
        header += [f"p{p}_x", f"p{p}_y", f"p{p}_z"]
    for j, hand in hand_ids:
        name = f"j{j}_{hand_name(hand)}"
        header += [f"{name}_x", f"{name}_y", f"{name}_z"]

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)

    with open(out_path, "w", newline="") as f:
        w = csv.writer(f)
        w.writerow(header)
        for i, t in enumerate(sim["t"]):
            row = [f"{float(t):.6f}"]
            for p in path_ids:
                row += [f"{v:.4f}" for v in sim["paths"][p][i]]
            for h in hand_ids:
                row += [f"{v:.4f}" for v in sim["hands"][h][i]]
            w.writerow(row)

    logger.info(f"[PREVIEW] wrote {len(sim['t'])} rows to {out_path}")
    return out_path
