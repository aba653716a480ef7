"""Procedural campaign content generators and SVG dungeon maps."""

from .canvas import DungeonCanvas, render_map
from .config import GeneratorSourceConfig, GeneratorType, load_config
from .dungeon import DoorType, DungeonDoor, DungeonLayout, load_layout
from .generators import GeneratorSource, MarkovContentGenerator, load_generator_source
from .markov import MarkovChain

__all__ = [
    "DoorType",
    "DungeonCanvas",
    "DungeonDoor",
    "DungeonLayout",
    "GeneratorSource",
    "GeneratorSourceConfig",
    "GeneratorType",
    "MarkovChain",
    "MarkovContentGenerator",
    "load_config",
    "load_generator_source",
    "load_layout",
    "render_map",
]
