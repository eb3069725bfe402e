"""
scripts/climate_canvas.py
=========================
An explicit drawing context for the figures, plus the file writer.

pyplot keeps an implicit "current figure / current axes" that every
plt.* call mutates.  The figures here instead thread a Canvas through each
drawing step: it owns one Figure and keeps an ordered log of what was
drawn onto it, so the composite map can be inspected (and tested)
without rendering a single pixel.

Output formats
--------------
Vector formats (.pdf, .svg, .eps, .ps) are written straight from
matplotlib at the requested size in inches.

Raster formats go through a small Pillow pipeline:

    savefig(bbox_inches="tight")  →  pad to the target aspect  →  Lanczos resize

bbox_inches="tight" keeps text near the edges from being clipped but makes
the pixel size unpredictable; padding with the background colour and
resizing afterwards gives us both tight text and exact dimensions.
"""

import io
from dataclasses import dataclass
from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.colors import to_hex
from PIL import Image

from climate_style import PAL, LayoutRegion


VECTOR_SUFFIXES = {".pdf", ".svg", ".eps", ".ps"}
DEFAULT_DPI     = 150


@dataclass(frozen=True)
class DrawOp:
    """One entry of the canvas draw log."""
    kind: str
    label: str
    region: LayoutRegion | None = None


class Canvas:
    """
    A figure plus the ordered list of drawing operations applied to it.

    Later operations compose visually on top of earlier ones, so the log
    order is also the stacking order.
    """

    def __init__(self, figsize=(10.0, 8.0), facecolor=PAL["bg"]):
        self.fig = plt.figure(figsize=figsize, facecolor=facecolor)
        self.ops: list[DrawOp] = []
        self.axes: dict = {}

    def add_axes(self, region: LayoutRegion, kind: str, label: str, **kwargs):
        """Create an axes at a literal region and log it."""
        if not isinstance(region, LayoutRegion):
            raise TypeError(f"Expected a LayoutRegion, got {type(region).__name__}")
        ax = self.fig.add_axes(region.rect, **kwargs)
        self.axes[label] = ax
        self.ops.append(DrawOp(kind, label, region))
        return ax

    def record(self, kind: str, label: str, region: LayoutRegion | None = None) -> None:
        """Log a drawing step that reuses an existing axes."""
        self.ops.append(DrawOp(kind, label, region))

    def count(self, kind: str) -> int:
        return sum(1 for op in self.ops if op.kind == kind)

    def kinds(self) -> list[str]:
        return [op.kind for op in self.ops]

    def save(self, path, width=None, height=None, dpi=DEFAULT_DPI) -> Path:
        return save_figure(self.fig, path, width=width, height=height, dpi=dpi)

    def close(self) -> None:
        plt.close(self.fig)


# ─────────────────────────────────────────────────────────────────────────────
# Saving
# ─────────────────────────────────────────────────────────────────────────────

def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    return int(color[1:3], 16), int(color[3:5], 16), int(color[5:7], 16)


def _pad_to_aspect(img: Image.Image, aspect: float, background: str) -> Image.Image:
    """Pad an image with the background colour until width / height == aspect."""
    w, h = img.size
    if w / h < aspect:
        new_w, new_h = round(h * aspect), h
    else:
        new_w, new_h = w, round(w / aspect)
    canvas = Image.new("RGB", (new_w, new_h), _hex_to_rgb(background))
    canvas.paste(img.convert("RGB"), ((new_w - w) // 2, (new_h - h) // 2))
    return canvas


def save_figure(fig, path, width=None, height=None, dpi=DEFAULT_DPI) -> Path:
    """
    Write a figure to disk.

    width and height are in inches; either may be omitted to keep the
    figure's current size.  Raster output is exactly width*dpi × height*dpi
    pixels.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    cur_w, cur_h = fig.get_size_inches()
    width  = cur_w if width is None else width
    height = cur_h if height is None else height
    if width <= 0 or height <= 0:
        raise ValueError(f"Figure size must be positive, got {width} × {height} in")
    fig.set_size_inches(width, height)

    background = to_hex(fig.get_facecolor())
    if path.suffix.lower() in VECTOR_SUFFIXES:
        fig.savefig(path, format=path.suffix.lower()[1:],
                    facecolor=background, edgecolor="none")
        print(f"[done]  Figure saved → {path}  ({width:g} × {height:g} in)")
        return path

    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=dpi, bbox_inches="tight",
                facecolor=background, edgecolor="none")
    buf.seek(0)

    px_w, px_h = round(width * dpi), round(height * dpi)
    rendered = Image.open(buf)
    padded   = _pad_to_aspect(rendered, px_w / px_h, background)
    final    = padded.resize((px_w, px_h), Image.LANCZOS)
    final.save(path, dpi=(dpi, dpi))

    print(f"[done]  Figure saved → {path}")
    print(f"        {path.stat().st_size / 1024:.0f} KB  |  {dpi} DPI  |  {px_w} × {px_h} px")
    return path
