from typing import Optional, Sequence, Union

from .bleed import AlphaFixAlgorithm
from .layout import HeuristicType, LayoutStrategy

DEFAULT_WIDTH = 2048
DEFAULT_HEIGHT = 2048
DEFAULT_MARGIN = 4


class PackerConfig:
    """Resolved settings for building one atlas."""

    def __init__(self, canvas_width: int = DEFAULT_WIDTH, canvas_height: int = DEFAULT_HEIGHT,
                 margin: int = DEFAULT_MARGIN,
                 bleed_algorithm: Union[AlphaFixAlgorithm, str] = AlphaFixAlgorithm.GAUSSIAN,
                 layout_strategy: Union[LayoutStrategy, str] = LayoutStrategy.MAX_RECTS,
                 trim: bool = False, max_workers: Optional[int] = None,
                 heuristics: Optional[Sequence[Union[HeuristicType, str]]] = None):
        if canvas_width <= 0 or canvas_height <= 0:
            raise ValueError(f"Canvas size must be positive, got {canvas_width}×{canvas_height}")
        if margin < 0:
            raise ValueError(f"Margin must not be negative, got {margin}")
        if max_workers is not None and max_workers <= 0:
            raise ValueError(f"Worker count must be positive, got {max_workers}")

        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.margin = margin
        self.bleed_algorithm = AlphaFixAlgorithm.parse(bleed_algorithm)
        self.layout_strategy = LayoutStrategy.parse(layout_strategy)
        self.trim = trim
        self.max_workers = max_workers
        if heuristics:
            self.heuristics = tuple(h if isinstance(h, HeuristicType) else HeuristicType.from_name(h)
                                    for h in heuristics)
        else:
            self.heuristics = tuple(HeuristicType)

    @classmethod
    def from_args(cls, args) -> 'PackerConfig':
        return cls(
            canvas_width=args.width,
            canvas_height=args.height,
            margin=args.margin,
            bleed_algorithm=args.bleed,
            layout_strategy=args.layout,
            trim=args.trim,
            max_workers=args.workers,
            heuristics=args.heuristics,
        )

    def __repr__(self):
        return (f"PackerConfig({self.canvas_width}×{self.canvas_height}, margin={self.margin}, "
                f"bleed={self.bleed_algorithm.value}, layout={self.layout_strategy.value})")
