from .bleed import AlphaFixAlgorithm, fix_alpha
from .combiner import CombineResult, SpriteCombiner, trim_whitespace
from .config import PackerConfig
from .geometry import Point, Rectangle, Size
from .layout import (
    HeuristicType,
    LayoutStrategy,
    MaxRectsLayout,
    RowLayout,
    find_dropped,
    get_layout_algorithm,
    select_best_attempt,
)
from .regions import RegionTracker, build_regions, sprite_region

__version__ = "0.1.0"
