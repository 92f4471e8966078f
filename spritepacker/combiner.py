import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple, Union

from PIL import Image

from .bleed import AlphaFixAlgorithm, fix_alpha
from .geometry import Rectangle, Size
from .layout import MaxRectsLayout, Placement, RowLayout, calculate_occupancy, find_dropped, natural_key
from .regions import RegionTracker


def trim_whitespace(img: Image.Image) -> Tuple[Image.Image, int, int, int, int]:
    """
    Trim transparent whitespace from an image.
    Returns the trimmed image and the offsets (left, top, width, height).
    """
    if img.mode != 'RGBA':
        img = img.convert('RGBA')

    # Get bounding box of non-zero alpha
    bbox = img.getchannel('A').getbbox()

    # If bbox is None (entirely transparent image), return original
    if bbox is None:
        return img, 0, 0, img.width, img.height

    left, top, right, bottom = bbox
    return img.crop(bbox), left, top, right - left, bottom - top


def trim_sprites(sprites: Dict[str, Image.Image]) -> Tuple[Dict[str, Image.Image], Dict[str, dict]]:
    """Trim every sprite, returning the trimmed images and the data needed to undo the trim."""
    trimmed = {}
    trim_data = {}
    for name, img in sprites.items():
        trimmed_img, trim_x, trim_y, trim_width, trim_height = trim_whitespace(img)
        trimmed[name] = trimmed_img
        trim_data[name] = {
            "original_width": img.width,
            "original_height": img.height,
            "trim_x": trim_x,
            "trim_y": trim_y,
            "trimmed_width": trim_width,
            "trimmed_height": trim_height
        }
    return trimmed, trim_data


def find_duplicates(sprites: Dict[str, Image.Image]) -> Tuple[Dict[str, Image.Image], Dict[str, List[str]]]:
    """Collapse pixel-identical sprites.

    Returns the unique sprites and, for each kept sprite that had copies, the
    names of the copies.
    """
    seen: Dict[Tuple[Tuple[int, int], bytes], str] = {}
    unique = {}
    aliases: Dict[str, List[str]] = {}
    for name, img in sprites.items():
        key = (img.size, img.tobytes())
        main = seen.get(key)
        if main is None:
            seen[key] = name
            unique[name] = img
        else:
            aliases.setdefault(main, []).append(name)
    return unique, aliases


class CombineResult:
    """The packed atlas, its colour map and where every sprite ended up."""

    def __init__(self, atlas: Image.Image, color_map: Image.Image, placements: List[Placement],
                 dropped: List[str], occupancy: float):
        self.atlas = atlas
        self.color_map = color_map
        self.placements = placements
        self.dropped = dropped
        self.occupancy = occupancy

    def to_atlas_data(self, image_name: str, trim_data: Optional[Dict[str, dict]] = None,
                      algorithm: str = "", layout: str = "") -> dict:
        frames = {}
        for name, rect in sorted(self.placements, key=lambda p: natural_key(p[0])):
            sprite_trim = trim_data.get(name) if trim_data else None
            if sprite_trim:
                source_rect = {"x": sprite_trim["trim_x"], "y": sprite_trim["trim_y"],
                               "w": rect.width, "h": rect.height}
                source_size = {"w": sprite_trim["original_width"], "h": sprite_trim["original_height"]}
            else:
                source_rect = {"x": 0, "y": 0, "w": rect.width, "h": rect.height}
                source_size = {"w": rect.width, "h": rect.height}

            frames[name] = {
                "frame": {"x": rect.x, "y": rect.y, "w": rect.width, "h": rect.height},
                "trimmed": bool(sprite_trim),
                "spriteSourceSize": source_rect,
                "sourceSize": source_size
            }

        return {
            "frames": frames,
            "meta": {
                "image": image_name,
                "format": "RGBA8888",
                "size": {"w": self.atlas.width, "h": self.atlas.height},
                "scale": "1",
                "bleed_algorithm": algorithm,
                "layout": layout,
                "dropped": list(self.dropped)
            }
        }


class SpriteCombiner:
    """Lays out sprites, draws them onto one canvas and bleeds their edges."""

    def __init__(self, layout_algorithm: Union[MaxRectsLayout, RowLayout], max_workers: Optional[int] = None):
        self.layout_algorithm = layout_algorithm
        self.max_workers = max_workers

    def combine(self, sprites: Dict[str, Image.Image], width: int, height: int, margin: int = 4,
                algorithm: Union[AlphaFixAlgorithm, str] = AlphaFixAlgorithm.GAUSSIAN) -> CombineResult:
        algorithm = AlphaFixAlgorithm.parse(algorithm)
        print(f"Combining {len(sprites)} sprites")
        print(f"Create texture with size: {width}×{height}")

        unique, aliases = find_duplicates(sprites)
        if aliases:
            print(f"Found {sum(len(names) for names in aliases.values())} duplicate sprites")

        sizes = {name: Size(img.width, img.height) for name, img in unique.items()}
        layout = self.layout_algorithm.layout(sizes, width, height, margin)

        canvas = Image.new('RGBA', (width, height), (0, 0, 0, 0))
        tracker = RegionTracker(margin)
        draw_lock = threading.Lock()

        def draw(placement: Placement):
            name, rect = placement
            sprite = unique[name]
            if sprite.mode != 'RGBA':
                sprite = sprite.convert('RGBA')
            tracker.add(name, rect)
            # Pillow images are not safe to paste into concurrently
            with draw_lock:
                canvas.paste(sprite, rect.location)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            list(executor.map(draw, layout))
        print("Generated combined texture")

        print(f"Start to fix alpha color using {algorithm.value} algorithm")
        regions = tracker.regions([name for name, _ in layout])
        atlas, color_map = fix_alpha(canvas, regions, algorithm, self.max_workers)
        print("Completed")

        placements = []
        for name, rect in layout:
            placements.append((name, rect))
            for alias in aliases.get(name, ()):
                placements.append((alias, Rectangle(rect.x, rect.y, rect.width, rect.height)))

        dropped = find_dropped(sprites, placements)
        for name in dropped:
            print(f"Sprite {name} did not fit and was left out")

        return CombineResult(atlas, color_map, placements, dropped,
                             calculate_occupancy(layout, width, height))
