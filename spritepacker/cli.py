import argparse
import json
import os
import time
from typing import Dict, List, Optional, Sequence

from PIL import Image

from .bleed import AlphaFixAlgorithm
from .combiner import SpriteCombiner, trim_sprites
from .config import DEFAULT_HEIGHT, DEFAULT_MARGIN, DEFAULT_WIDTH, PackerConfig
from .layout import HEURISTIC_NAMES, LayoutStrategy, get_layout_algorithm

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.gif')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Pack sprites into a single atlas and bleed their edge colors')
    parser.add_argument('input_dir', help='Directory containing sprite images')
    parser.add_argument('output_dir', help='Directory to save the atlas, color map and frame data')
    parser.add_argument('--width', type=int, default=DEFAULT_WIDTH, help='Width of the atlas')
    parser.add_argument('--height', type=int, default=DEFAULT_HEIGHT, help='Height of the atlas')
    parser.add_argument('--margin', type=int, default=DEFAULT_MARGIN, help='Padding around each sprite')
    parser.add_argument('--bleed', default=AlphaFixAlgorithm.GAUSSIAN.value,
                        choices=[algorithm.value for algorithm in AlphaFixAlgorithm],
                        help='Color reconstruction for transparent pixels')
    parser.add_argument('--layout', default=LayoutStrategy.MAX_RECTS.value,
                        choices=[strategy.value for strategy in LayoutStrategy],
                        help='Layout algorithm')
    parser.add_argument('--heuristics', nargs='+', choices=list(HEURISTIC_NAMES), default=None,
                        help='MaxRects placement heuristics to try (default: all)')
    parser.add_argument('--prefix', default='atlas', help='Prefix for output files')
    parser.add_argument('--trim', action='store_true', help='Trim transparent borders from sprites')
    parser.add_argument('--workers', type=int, default=None, help='Number of worker threads')
    return parser


def find_sprite_files(input_dir: str) -> List[str]:
    """List image files directly inside ``input_dir``."""
    sprite_files = []
    for file in sorted(os.listdir(input_dir)):
        full_path = os.path.join(input_dir, file)
        if os.path.isfile(full_path) and file.lower().endswith(IMAGE_EXTENSIONS):
            sprite_files.append(full_path)
    return sprite_files


def load_sprites(paths: Sequence[str]) -> Dict[str, Image.Image]:
    """Open every path as an RGBA image keyed by file name, skipping unreadable files."""
    sprites = {}
    for path in paths:
        try:
            with Image.open(path) as img:
                sprites[os.path.basename(path)] = img.convert('RGBA')
        except OSError as e:
            print(f"Error loading {path}: {e}")
    return sprites


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = PackerConfig.from_args(args)
    except ValueError as e:
        parser.error(str(e))

    start_time = time.monotonic()

    print(f"Scanning directory: {args.input_dir}")
    try:
        sprite_files = find_sprite_files(args.input_dir)
    except OSError as e:
        print(f"Error scanning directory: {e}")
        return 1

    sprites = load_sprites(sprite_files)
    if not sprites:
        print(f"No sprite files found in {args.input_dir}")
        return 1
    print(f"Found {len(sprites)} sprite files")

    trim_data = None
    if config.trim:
        sprites, trim_data = trim_sprites(sprites)

    layout_algorithm = get_layout_algorithm(config.layout_strategy, config.heuristics)
    combiner = SpriteCombiner(layout_algorithm, config.max_workers)
    result = combiner.combine(sprites, config.canvas_width, config.canvas_height,
                              config.margin, config.bleed_algorithm)

    os.makedirs(args.output_dir, exist_ok=True)
    atlas_path = os.path.join(args.output_dir, f"{args.prefix}.png")
    color_map_path = os.path.join(args.output_dir, f"{args.prefix}_color_map.png")
    data_path = os.path.join(args.output_dir, f"{args.prefix}.json")

    print("Saving texture...")
    result.atlas.save(atlas_path)
    print(f"Saved combined texture to: {atlas_path}")

    print("Saving color map...")
    result.color_map.save(color_map_path)
    print(f"Saved color map to: {color_map_path}")

    print("Saving frame data...")
    atlas_data = result.to_atlas_data(os.path.basename(atlas_path), trim_data,
                                      config.bleed_algorithm.value, config.layout_strategy.value)
    with open(data_path, 'w') as f:
        json.dump(atlas_data, f, indent=2)
    print(f"Saved frame data to: {data_path}")

    if result.dropped:
        print(f"\n{len(result.dropped)} sprites did not fit: {', '.join(result.dropped)}")
    print(f"\nFinal packing efficiency: {result.occupancy:.2%}")
    print(f"Total time: {time.monotonic() - start_time:.2f}s")
    return 0
