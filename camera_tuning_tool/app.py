from __future__ import annotations

import argparse
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageOps

from camera_tuning_tool.config import CFG, Config
from camera_tuning_tool.filters import MANUAL_KEYS, mode_ids
from camera_tuning_tool.preferences import PreferenceStore
from camera_tuning_tool.session import CaptureSession
from camera_tuning_tool.storage import JsonFilePreferenceBackend
from camera_tuning_tool.tracking import Detection
from camera_tuning_tool.xmp import write_filter_tags

try:
    import rawpy

    HAS_RAW = True
except Exception:
    HAS_RAW = False

RAW_EXTS = {
    ".arw",
    ".dng",
    ".cr2",
    ".cr3",
    ".nef",
}
IMG_EXTS = {
    ".jpg",
    ".jpeg",
    ".png",
}
ALL_EXTS = RAW_EXTS | IMG_EXTS


def iter_images(folder: Path) -> Iterable[Path]:
    for p in sorted(folder.rglob("*")):
        if p.is_file() and p.suffix.lower() in ALL_EXTS:
            yield p


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def read_jpeg_like_to_bgr8(path: Path) -> Optional[np.ndarray]:
    try:
        with Image.open(path) as im:
            im = ImageOps.exif_transpose(im)
            im = im.convert("RGB")
            rgb8 = np.array(im, dtype=np.uint8)
        return cv2.cvtColor(rgb8, cv2.COLOR_RGB2BGR)
    except Exception as e:
        print(f"[WARN] PIL read failed {path}: {e}")
        return None


def read_raw_to_bgr8(path: Path, cfg: Config) -> Optional[np.ndarray]:
    if not HAS_RAW:
        print("[WARN] rawpy not installed; skipping RAW.")
        return None
    try:
        with rawpy.imread(str(path)) as raw:
            rgb8 = raw.postprocess(
                output_bps=8,
                use_auto_wb=bool(cfg.raw_use_auto_wb),
                use_camera_wb=not cfg.raw_use_auto_wb,
                no_auto_bright=cfg.raw_no_auto_bright,
                highlight_mode=int(cfg.raw_highlight_mode),
                output_color=rawpy.ColorSpace.sRGB,
            )
        return cv2.cvtColor(rgb8, cv2.COLOR_RGB2BGR)
    except Exception as e:
        print(f"[WARN] RAW read failed {path}: {e}")
        return None


def read_image_any_to_bgr8(path: Path, cfg: Config) -> Optional[np.ndarray]:
    if path.suffix.lower() in RAW_EXTS:
        return read_raw_to_bgr8(path, cfg)
    return read_jpeg_like_to_bgr8(path)


def write_jpeg(path: Path, bgr8: np.ndarray, quality: int) -> None:
    ensure_dir(path.parent)
    ok = cv2.imwrite(str(path), bgr8, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    if not ok:
        raise RuntimeError(f"cv2.imwrite failed for {path}")


def parse_box(text: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    if not text:
        return None
    parts = [float(v) for v in text.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("--box expects x,y,w,h in pixels")
    return parts[0], parts[1], parts[2], parts[3]


def process_frame(
    session: CaptureSession,
    bgr8: np.ndarray,
    label: str,
    box: Optional[Tuple[float, float, float, float]],
    liked: bool,
    variants: bool,
) -> Dict[str, Any]:
    h, w = bgr8.shape[:2]
    if box is None:
        frac = session.cfg.default_region_frac
        box = ((w - w * frac) / 2.0, (h - h * frac) / 2.0, w * frac, h * frac)

    det = Detection(label=label, confidence=1.0, bbox=box)
    session.place_marker(
        (box[0] + box[2] / 2.0) / w * 100.0,
        (box[1] + box[3] / 2.0) / h * 100.0,
        box[2] / w * 100.0,
        box[3] / h * 100.0,
    )
    session.sample_tick(bgr8, [det])

    out: Dict[str, Any] = {
        "origin": session.origin.value,
        "settings": session.settings,
        "sample": session.sample,
    }
    if variants:
        out["variants"] = session.capture_variants(bgr8)
        return out

    capture = session.capture(bgr8)
    if capture is not None and liked:
        session.like(capture)
    out["capture"] = capture
    return out


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser()
    ap.add_argument("--input", type=str, default="input", help="Input folder")
    ap.add_argument("--output", type=str, default="output", help="Output folder")
    ap.add_argument(
        "--quality", type=int, default=CFG.jpeg_quality, help="JPEG quality (1-100)"
    )
    ap.add_argument("--mode", type=str, default="normal", choices=mode_ids())
    ap.add_argument(
        "--label", type=str, default="unknown", help="Detected subject label"
    )
    ap.add_argument(
        "--box",
        type=str,
        default=None,
        help="Subject box x,y,w,h in pixels (followed like a detection, 5%% padding)",
    )

    for key in MANUAL_KEYS:
        ap.add_argument(
            f"--{key}", type=float, default=0.0, help=f"Manual {key} (-50..50)"
        )

    ap.add_argument(
        "--store",
        type=str,
        default=None,
        help="JSON file with learned preferences (created if missing)",
    )
    ap.add_argument("--like", action="store_true", help="Mark captures as liked")
    ap.add_argument(
        "--variants", action="store_true", help="Write the five style variants"
    )
    ap.add_argument("--no-learning", action="store_true")
    ap.add_argument(
        "--suggest-only",
        action="store_true",
        help="Do not auto-apply learned filters",
    )
    ap.add_argument("--no-tags", action="store_true", help="Skip XMP tagging")
    ap.add_argument(
        "--raw-auto-wb",
        action="store_true",
        help="Use rawpy auto WB instead of camera WB",
    )

    return ap.parse_args()


def main() -> None:
    t0 = time.perf_counter()

    args = parse_args()
    input_dir = Path(args.input).expanduser().resolve()
    output_dir = Path(args.output).expanduser().resolve()

    if not input_dir.exists():
        raise SystemExit(f"Input folder does not exist: {input_dir}")

    cfg = Config()
    cfg.jpeg_quality = int(args.quality)
    cfg.raw_use_auto_wb = bool(args.raw_auto_wb)
    cfg.auto_apply_preferences = not bool(args.suggest_only)

    backend = JsonFilePreferenceBackend(args.store) if args.store else None
    store = PreferenceStore(backend, cfg=cfg)
    store.set_learning_enabled(not args.no_learning)
    print(f"[INFO] Loaded {len(store)} learned preferences")

    session = CaptureSession(store, cfg=cfg, mode=args.mode)
    for key in MANUAL_KEYS:
        value = float(np.clip(getattr(args, key), -50.0, 50.0))
        if value:
            session.set_manual_adjustment(key, value)

    try:
        box = parse_box(args.box)
    except (ValueError, argparse.ArgumentTypeError) as e:
        raise SystemExit(f"Invalid --box {args.box!r}: {e}")
    ensure_dir(output_dir)

    count_in = 0
    count_out = 0

    for p in iter_images(input_dir):
        count_in += 1
        bgr8 = read_image_any_to_bgr8(p, cfg)
        if bgr8 is None:
            print(f"[WARN] Could not read {p}")
            continue

        res = process_frame(session, bgr8, args.label, box, args.like, args.variants)
        rel = p.relative_to(input_dir)

        if args.variants:
            for v in res["variants"]:
                out_path = (output_dir / rel).with_name(f"{rel.stem}_{v.variant_id}.jpg")
                write_jpeg(out_path, v.image, cfg.jpeg_quality)
                if not args.no_tags:
                    write_filter_tags(
                        out_path, v.effective_filters, v.user_adjustments, args.mode
                    )
                count_out += 1
            print(f"Saved: {len(res['variants'])} variants of {p.name}")
            continue

        cap = res["capture"]
        if cap is None:
            print(f"[WARN] Capture skipped for {p}")
            continue

        out_path = (output_dir / rel).with_suffix(".jpg")
        write_jpeg(out_path, cap.image, cfg.jpeg_quality)
        if not args.no_tags:
            write_filter_tags(out_path, cap.filters, cap.manual_adjustments, cap.mode)
        count_out += 1

        sm = res.get("sample")
        st = res.get("settings")
        f = cap.filters
        print(
            f"Saved: {out_path} | "
            f"src={res['origin']} "
            f"Y={getattr(sm, 'brightness', 0)} env={getattr(sm, 'env_brightness', 0)} "
            f"temp={getattr(sm, 'color_temp', 0)} sat={getattr(sm, 'saturation', 0)} | "
            f"ev={getattr(st, 'exposure_ev', 0.0):+.1f} wb={getattr(st, 'white_balance', '')} | "
            f"b={f.brightness:.1f} c={f.contrast:.1f} s={f.saturate:.1f} w={f.warmth:.1f}"
        )

    store.flush()
    store.close()

    total = time.perf_counter() - t0
    rate = (count_out / total) if total > 0 else 0.0
    print(
        f"Done. Read {count_in} files, wrote {count_out} JPEGs to {output_dir}. "
        f"Total={total:.2f}s ({rate:.2f} img/s, {rate*60:.1f} img/min)"
    )


if __name__ == "__main__":
    main()
