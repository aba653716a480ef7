from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Sequence, Tuple, Union

from .config import load_document


class DoorType(IntEnum):
    ARCH = 0
    REGULAR = 1
    SECRET = 2
    LOCKED = 3
    TRAPPED = 4
    PORTCULLIS = 5

    @classmethod
    def parse(cls, raw: Any) -> DoorType:
        if isinstance(raw, DoorType):
            return raw
        if isinstance(raw, bool):
            raise ValueError(f"Invalid door type: {raw!r}")
        if isinstance(raw, int):
            return cls(raw)
        if isinstance(raw, str):
            key = raw.strip().upper()
            if key.isdigit():
                return cls(int(key))
            if key in cls.__members__:
                return cls[key]
        raise ValueError(f"Invalid door type: {raw!r}")


@dataclass(frozen=True)
class DungeonDoor:
    tile_id: int
    door_type: DoorType = DoorType.REGULAR
    is_horizontal: bool = False


@dataclass(frozen=True)
class DungeonLayout:
    width: int
    height: int
    foreground_tiles: FrozenSet[int]
    doors: Tuple[DungeonDoor, ...] = ()

    def tile_id(self, row: int, col: int) -> int:
        return row * self.width + col

    def to_dict(self) -> Dict[str, object]:
        return {
            "width": self.width,
            "height": self.height,
            "tiles": sorted(self.foreground_tiles),
            "doors": [
                {
                    "tileId": door.tile_id,
                    "doorType": door.door_type.name.lower(),
                    "isHorizontal": door.is_horizontal,
                }
                for door in self.doors
            ],
        }


def _parse_door(index: int, raw: Any) -> DungeonDoor:
    if not isinstance(raw, Mapping):
        raise ValueError(f"Door #{index} must be a table.")
    if "tileId" not in raw:
        raise ValueError(f"Door #{index} is missing tileId.")
    try:
        door_type = DoorType.parse(raw.get("doorType", DoorType.REGULAR))
    except ValueError as exc:
        raise ValueError(f"Door #{index}: {exc}") from None
    return DungeonDoor(
        tile_id=int(raw["tileId"]),
        door_type=door_type,
        is_horizontal=bool(raw.get("isHorizontal", False)),
    )


def parse_layout(raw: Mapping[str, Any]) -> DungeonLayout:
    if not isinstance(raw, Mapping):
        raise ValueError("Dungeon layout must be a table.")
    try:
        width = int(raw["width"])
        height = int(raw["height"])
    except KeyError as exc:
        raise ValueError(f"Dungeon layout is missing '{exc.args[0]}'.") from None
    if width <= 0 or height <= 0:
        raise ValueError("Dungeon layout width and height must be positive.")
    tiles_raw = raw.get("tiles", [])
    if not isinstance(tiles_raw, (list, tuple)):
        raise ValueError("Dungeon layout 'tiles' must be a list of tile ids.")
    tiles = frozenset(int(tile) for tile in tiles_raw)
    outside = [tile for tile in tiles if not 0 <= tile < width * height]
    if outside:
        raise ValueError(f"Tile ids outside the {width}x{height} grid: {sorted(outside)}")
    doors_raw = raw.get("doors", [])
    if not isinstance(doors_raw, (list, tuple)):
        raise ValueError("Dungeon layout 'doors' must be a list.")
    doors: List[DungeonDoor] = [_parse_door(index, entry) for index, entry in enumerate(doors_raw)]
    stray = sorted(door.tile_id for door in doors if not 0 <= door.tile_id < width * height)
    if stray:
        raise ValueError(f"Door tile ids outside the {width}x{height} grid: {stray}")
    return DungeonLayout(width=width, height=height, foreground_tiles=tiles, doors=tuple(doors))


DOOR_SYMBOLS: Mapping[str, DoorType] = {
    "A": DoorType.ARCH,
    "D": DoorType.REGULAR,
    "S": DoorType.SECRET,
    "L": DoorType.LOCKED,
    "T": DoorType.TRAPPED,
    "P": DoorType.PORTCULLIS,
}
FLOOR_SYMBOL = "."


def layout_from_rows(rows: Sequence[str]) -> DungeonLayout:
    """Build a layout from text rows.

    ``.`` marks floor and the letters of ``DOOR_SYMBOLS`` mark doors, which
    also count as floor. A door is horizontal when the passage through it
    runs left to right, i.e. it has floor to its left or right.
    """
    lines = [row.rstrip() for row in rows if row.strip()]
    width = max((len(line) for line in lines), default=0)
    if not lines:
        raise ValueError("Dungeon layout has no rows.")
    grid = [line.ljust(width) for line in lines]

    def is_open(row: int, col: int) -> bool:
        if not (0 <= row < len(grid) and 0 <= col < width):
            return False
        char = grid[row][col]
        return char == FLOOR_SYMBOL or char.upper() in DOOR_SYMBOLS

    tiles = set()
    doors: List[DungeonDoor] = []
    for row, line in enumerate(grid):
        for col, char in enumerate(line):
            if not is_open(row, col):
                continue
            tile_id = row * width + col
            tiles.add(tile_id)
            door_type = DOOR_SYMBOLS.get(char.upper())
            if door_type is not None:
                horizontal = is_open(row, col - 1) or is_open(row, col + 1)
                doors.append(DungeonDoor(tile_id=tile_id, door_type=door_type, is_horizontal=horizontal))
    return DungeonLayout(width=width, height=len(grid), foreground_tiles=frozenset(tiles), doors=tuple(doors))


def load_layout(path: Union[str, Path]) -> DungeonLayout:
    layout_path = Path(path)
    if layout_path.suffix.lower() == ".txt":
        if not layout_path.exists():
            raise FileNotFoundError(f"Layout file not found: {layout_path}")
        return layout_from_rows(layout_path.read_text(encoding="utf-8").splitlines())
    return parse_layout(load_document(layout_path))
