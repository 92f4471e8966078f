"""Alpha bleeding for packed atlases.

Texture filtering samples fully transparent pixels next to a sprite's edge, so
their RGB has to be something close to the visible edge colour rather than
black. The fixer fills those pixels ring by ring outward from the opaque
content, staying inside each sprite's region, and leaves their alpha at zero.
"""
import enum
import math
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from .geometry import Rectangle


class AlphaFixAlgorithm(enum.Enum):
    """How the colour of a transparent pixel is reconstructed from its neighbours."""
    NONE = 'none'          # Leave transparent pixels alone
    NEAREST = 'nearest'    # Copy the first resolved neighbour
    WEIGHTED = 'weighted'  # Linear falloff average over the 8 neighbours
    GAUSSIAN = 'gaussian'  # Gaussian average over the extended neighbourhood

    @classmethod
    def parse(cls, value: Union['AlphaFixAlgorithm', str]) -> 'AlphaFixAlgorithm':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown alpha fix algorithm: {value!r}") from None


# Right, down, left, up, then the diagonals. Nearest relies on this order.
OFFSETS: Tuple[Tuple[int, int], ...] = (
    (1, 0), (0, 1), (-1, 0), (0, -1),
    (1, 1), (-1, 1), (-1, -1), (1, -1),
)

# Every cell within Chebyshev distance 2 except the four (±2, ±2) corners.
EXTENDED_OFFSETS: Tuple[Tuple[int, int], ...] = OFFSETS + (
    (2, 0), (0, 2), (-2, 0), (0, -2),
    (2, 1), (1, 2), (-1, 2), (-2, 1),
    (-2, -1), (-1, -2), (1, -2), (2, -1),
)

LINEAR_MAX_DISTANCE = 3.0
GAUSSIAN_SIGMA = 2.0
TRUNCATE_EPSILON = 1e-6


def linear_weight(distance: float, max_distance: float = LINEAR_MAX_DISTANCE) -> float:
    """Weight falling linearly from 1 at the pixel to 0 at ``max_distance``."""
    return max(0.0, 1.0 - distance / max_distance)


def gaussian_weight(distance: float, sigma: float = GAUSSIAN_SIGMA) -> float:
    """Gaussian weight for a neighbour at ``distance``."""
    return math.exp(-(distance * distance) / (2 * sigma * sigma))


class BleedKernel(NamedTuple):
    """Neighbour offsets and the weight of each one."""
    offsets: Tuple[Tuple[int, int], ...]
    weights: Tuple[float, ...]

    @classmethod
    def build(cls, offsets, weight_fn) -> 'BleedKernel':
        return cls(tuple(offsets),
                   tuple(weight_fn(math.hypot(dx, dy)) for dx, dy in offsets))


def kernel_for(algorithm: AlphaFixAlgorithm) -> BleedKernel:
    """Offsets and weights used to reconstruct colours for ``algorithm``."""
    if algorithm == AlphaFixAlgorithm.NEAREST:
        # Nearest takes the first hit, weights are unused
        return BleedKernel(OFFSETS, (1.0,) * len(OFFSETS))
    if algorithm == AlphaFixAlgorithm.WEIGHTED:
        return BleedKernel.build(OFFSETS, linear_weight)
    if algorithm == AlphaFixAlgorithm.GAUSSIAN:
        return BleedKernel.build(EXTENDED_OFFSETS, gaussian_weight)
    raise ValueError(f"No bleed kernel for algorithm: {algorithm!r}")


class RegionTask:
    """A region clipped to the canvas, together with the pixels it owns."""

    def __init__(self, bounds: Rectangle, owned: np.ndarray):
        self.bounds = bounds
        self.owned = owned

    @property
    def slices(self) -> Tuple[slice, slice]:
        return (slice(self.bounds.y, self.bounds.bottom),
                slice(self.bounds.x, self.bounds.right))


def assign_regions(regions: Sequence[Rectangle], width: int, height: int) -> List[RegionTask]:
    """Clip regions to the canvas and give every pixel to the first region containing it.

    Pixels outside every region are owned by nobody and never touched. Overlapping
    regions are not supported and only produce a warning.
    """
    owner = np.full((height, width), -1, dtype=np.int32)
    clipped = []
    contested = 0
    for index, region in enumerate(regions):
        bounds = region.clip(width, height)
        if bounds is None:
            continue
        view = owner[bounds.y:bounds.bottom, bounds.x:bounds.right]
        free = view == -1
        contested += view.size - int(free.sum())
        view[free] = index
        clipped.append((index, bounds))

    if contested:
        print(f"Warning: {contested} pixel(s) lie in overlapping sprite regions, "
              f"shared pixels go to the earlier region")

    tasks = []
    for index, bounds in clipped:
        owned = owner[bounds.y:bounds.bottom, bounds.x:bounds.right] == index
        if owned.any():
            tasks.append(RegionTask(bounds, owned))
    return tasks


def _shift(array: np.ndarray, dx: int, dy: int) -> np.ndarray:
    """out[y, x] = array[y + dy, x + dx], zero where that falls outside the array."""
    out = np.zeros_like(array)
    height, width = array.shape[:2]
    if abs(dx) >= width or abs(dy) >= height:
        return out
    src_y = slice(max(dy, 0), height + min(dy, 0))
    dst_y = slice(max(-dy, 0), height + min(-dy, 0))
    src_x = slice(max(dx, 0), width + min(dx, 0))
    dst_x = slice(max(-dx, 0), width + min(-dx, 0))
    out[dst_y, dst_x] = array[src_y, src_x]
    return out


def _nearest_colors(rgb: np.ndarray, resolved: np.ndarray, kernel: BleedKernel) -> np.ndarray:
    """Colour of the first resolved neighbour in offset order, for every pixel."""
    colors = np.zeros(rgb.shape, dtype=np.uint8)
    found = np.zeros(resolved.shape, dtype=bool)
    for dx, dy in kernel.offsets:
        hit = _shift(resolved, dx, dy) & ~found
        if hit.any():
            colors[hit] = _shift(rgb, dx, dy)[hit]
            found |= hit
    return colors


def _weighted_colors(rgb: np.ndarray, resolved: np.ndarray, kernel: BleedKernel) -> np.ndarray:
    """Weighted average of the resolved neighbours' colours, for every pixel."""
    total = np.zeros(resolved.shape, dtype=np.float64)
    accum = np.zeros(rgb.shape, dtype=np.float64)
    for (dx, dy), weight in zip(kernel.offsets, kernel.weights):
        if weight <= 0:
            continue
        contribution = _shift(resolved, dx, dy) * weight
        total += contribution
        accum += contribution[..., None] * _shift(rgb, dx, dy)

    averaged = np.zeros(rgb.shape, dtype=np.float64)
    np.divide(accum, total[..., None], out=averaged, where=total[..., None] > 0)
    # Truncate toward zero; values within epsilon below a whole number round up
    return np.clip(np.floor(averaged + TRUNCATE_EPSILON), 0, 255).astype(np.uint8)


def mark_processed(pixels: np.ndarray, processed: np.ndarray, task: RegionTask):
    """Mark every owned pixel with any opacity as resolved."""
    ys, xs = task.slices
    opaque = task.owned & (pixels[ys, xs, 3] > 0)
    processed[ys, xs][opaque] = True


def fill_pass(pixels: np.ndarray, processed: np.ndarray, color_map: np.ndarray,
              task: RegionTask, algorithm: AlphaFixAlgorithm, kernel: BleedKernel) -> int:
    """Resolve every pending pixel that touches an already resolved one.

    Colours come from the state before the pass, so the fill grows by one ring.
    Returns the number of pixels resolved.
    """
    ys, xs = task.slices
    rgba = pixels[ys, xs]
    done = processed[ys, xs]
    owned = task.owned

    resolved = owned & (done | (rgba[..., 3] > 0))
    pending = owned & ~resolved
    if not pending.any():
        return 0

    touching = np.zeros(pending.shape, dtype=bool)
    for dx, dy in kernel.offsets:
        touching |= _shift(resolved, dx, dy)
    eligible = pending & touching
    if not eligible.any():
        return 0

    rgb = rgba[..., :3]
    if algorithm == AlphaFixAlgorithm.NEAREST:
        colors = _nearest_colors(rgb, resolved, kernel)
    else:
        colors = _weighted_colors(rgb, resolved, kernel)

    rgba[eligible, :3] = colors[eligible]
    rgba[eligible, 3] = 0
    color_map[ys, xs][eligible, :3] = colors[eligible]
    done[eligible] = True
    return int(eligible.sum())


def fill_region(pixels: np.ndarray, processed: np.ndarray, color_map: np.ndarray,
                task: RegionTask, algorithm: AlphaFixAlgorithm, kernel: BleedKernel) -> int:
    """Grow resolved colour into the region's transparent pixels until nothing changes.

    Returns the number of passes that changed something.
    """
    passes = 0
    while fill_pass(pixels, processed, color_map, task, algorithm, kernel):
        passes += 1
    return passes


def fix_alpha(image: Image.Image, regions: Sequence[Rectangle],
              algorithm: Union[AlphaFixAlgorithm, str] = AlphaFixAlgorithm.GAUSSIAN,
              max_workers: Optional[int] = None) -> Tuple[Image.Image, Image.Image]:
    """Bleed edge colours into the transparent pixels of ``image`` in place.

    Returns ``(image, color_map)`` where the colour map is an opaque copy of
    every pixel's RGB after fixing. With ``AlphaFixAlgorithm.NONE`` only the
    colour map is produced.
    """
    algorithm = AlphaFixAlgorithm.parse(algorithm)
    width, height = image.size
    if width == 0 or height == 0:
        return image, image

    if image.mode != 'RGBA':
        raise ValueError(f"Expected an RGBA image, got mode {image.mode}")

    pixels = np.array(image, dtype=np.uint8)
    color_map = pixels.copy()
    color_map[..., 3] = 255

    if algorithm == AlphaFixAlgorithm.NONE:
        return image, Image.fromarray(color_map)

    kernel = kernel_for(algorithm)
    tasks = assign_regions(regions, width, height)
    processed = np.zeros((height, width), dtype=bool)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        list(executor.map(partial(mark_processed, pixels, processed), tasks))
        list(executor.map(partial(fill_region, pixels, processed, color_map,
                                  algorithm=algorithm, kernel=kernel), tasks))

    image.paste(Image.fromarray(pixels), (0, 0))
    return image, Image.fromarray(color_map)
