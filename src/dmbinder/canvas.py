"""SVG rendering of a finished dungeon layout.

The whole floor is drawn as one path, every door glyph as a second path and
secret door glyphs as a third. Floor and door paths are emitted with relative
moves; each glyph leaves the pen back on its cell's top-left corner so that
the next cell can be reached with a single ``m`` command.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Sequence, Union

import structlog

from .config import DungeonCanvasConfig
from .dungeon import DoorType, DungeonDoor, DungeonLayout
from .errors import CanvasStateError

logger = structlog.get_logger()

Number = Union[int, float]


def fmt(value: Number) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class CanvasState(Enum):
    EMPTY = "empty"
    SPACES_FILLED = "spaces_filled"
    DOORS_FILLED = "doors_filled"
    DRAWN = "drawn"


def dedupe_doors(doors: Iterable[DungeonDoor]) -> List[DungeonDoor]:
    seen = set()
    results: List[DungeonDoor] = []
    for door in doors:
        if door.tile_id not in seen:
            seen.add(door.tile_id)
            results.append(door)
    return results


class DungeonCanvas:
    JAMB_THICKNESS = 1

    def __init__(self, config: DungeonCanvasConfig) -> None:
        self._config = config
        self._foreground: List[str] = []
        self._doors: List[str] = []
        self._secrets: List[str] = []
        self.state = CanvasState.EMPTY

    @property
    def width(self) -> int:
        return self._config.width

    @property
    def height(self) -> int:
        return self._config.height

    @property
    def cell_size(self) -> Number:
        return self._config.cell_size

    @property
    def map_padding(self) -> int:
        return self._config.map_padding

    @property
    def cell_midpoint(self) -> Number:
        return self.cell_size / 2

    @property
    def jamb_width(self) -> Number:
        return self.cell_size / 6

    @property
    def door_thickness(self) -> Number:
        return self.cell_size / 4

    @property
    def door_width(self) -> Number:
        return self.cell_size - (2 * self.jamb_width) - 2

    @property
    def trap_thickness(self) -> Number:
        return self.cell_size / 3

    @property
    def foreground_path(self) -> str:
        return "".join(self._foreground)

    @property
    def door_path(self) -> str:
        return "".join(self._doors)

    @property
    def secret_path(self) -> str:
        return "".join(self._secrets)

    def _require(self, action: str, *allowed: CanvasState) -> None:
        if self.state not in allowed:
            raise CanvasStateError(f"Cannot {action} while the canvas is {self.state.value}.")

    def _new_line(self, row: int) -> str:
        c = self.cell_size
        return f"M{fmt(c * self.map_padding)},{fmt(row * c + c * self.map_padding)}"

    def fill_spaces(self, foreground_tiles: Iterable[int]) -> None:
        self._require("fill spaces", CanvasState.EMPTY)
        floor = set(foreground_tiles)
        c = fmt(self.cell_size)
        square = f"h{c}v{c}h-{c}v-{c}m{c},0"
        skip = f"m{c},0"
        for row in range(self.height):
            self._foreground.append(self._new_line(row))
            for col in range(self.width):
                tile_id = row * self.width + col
                self._foreground.append(square if tile_id in floor else skip)
        self.state = CanvasState.SPACES_FILLED
        logger.debug("canvas_spaces_filled", floor_tiles=len(floor))

    def fill_doors(self, doors: Sequence[DungeonDoor]) -> None:
        self._require("fill doors", CanvasState.SPACES_FILLED)
        queue = sorted(dedupe_doors(doors), key=lambda door: door.tile_id)
        self.state = CanvasState.DOORS_FILLED
        grid_size = self.width * self.height
        index = 0
        for row in range(self.height):
            if index >= len(queue):
                break
            first_in_row = True
            move_x = 0
            for col in range(self.width):
                if index >= len(queue):
                    break
                door = queue[index]
                tile_id = row * self.width + col
                if door.tile_id < tile_id or door.tile_id >= grid_size:
                    logger.warning("door_outside_grid", tile_id=door.tile_id, width=self.width, height=self.height)
                    return
                if door.tile_id != tile_id:
                    move_x += 1
                    continue
                if first_in_row:
                    self._doors.append(self._new_line(row))
                    first_in_row = False
                if move_x:
                    self._doors.append(f"m{fmt(move_x * self.cell_size)},0")
                self.draw_door(door)
                index += 1
                move_x = 1
        logger.debug("canvas_doors_filled", doors=index)

    def draw_door(self, door: DungeonDoor) -> None:
        if door.door_type is DoorType.SECRET:
            self._draw_secret(door)
            return
        self._draw_arch(door.is_horizontal)
        if door.door_type is DoorType.REGULAR:
            self._draw_plain_door(door.is_horizontal)
        elif door.door_type is DoorType.TRAPPED:
            self._draw_trapped(door.is_horizontal)
            self._draw_plain_door(door.is_horizontal)
        elif door.door_type is DoorType.LOCKED:
            self._draw_locked(door.is_horizontal)
            self._draw_plain_door(door.is_horizontal)
        elif door.door_type is DoorType.PORTCULLIS:
            self._draw_portcullis(door.is_horizontal)

    def _draw_arch(self, is_horizontal: bool) -> None:
        c = fmt(self.cell_size)
        offset = fmt(self.cell_midpoint - self.JAMB_THICKNESS)
        jamb = fmt(2 * self.JAMB_THICKNESS)
        width = fmt(self.jamb_width)
        if is_horizontal:
            self._doors.append(
                f"m{offset},0h{jamb}v{width}h-{jamb}z"
                f"m0,{c}v-{width}h{jamb}v{width}z"
                f"m-{offset},-{c}"
            )
        else:
            self._doors.append(
                f"m0,{offset}v{jamb}h{width}v-{jamb}z"
                f"m{c},0h-{width}v{jamb}h{width}z"
                f"m-{c},-{offset}"
            )

    def _draw_plain_door(self, is_horizontal: bool) -> None:
        along = fmt(self.cell_midpoint - self.door_thickness)
        inset = fmt(self.jamb_width + 1)
        length = fmt(self.door_width)
        thickness = fmt(2 * self.door_thickness)
        if is_horizontal:
            self._doors.append(
                f"m{along},{inset}v{length}h{thickness}v-{length}h-{thickness}m-{along},-{inset}"
            )
        else:
            self._doors.append(
                f"m{inset},{along}h{length}v{thickness}h-{length}v-{thickness}m-{inset},-{along}"
            )

    def _draw_locked(self, is_horizontal: bool) -> None:
        mid = fmt(self.cell_midpoint)
        inset = fmt(self.jamb_width + 1)
        length = fmt(self.door_width)
        back = fmt(self.door_width + self.jamb_width + 1)
        if is_horizontal:
            self._doors.append(f"m{mid},{inset}v{length}m-{mid},-{back}")
        else:
            self._doors.append(f"m{inset},{mid}h{length}m-{back},-{mid}")

    def _draw_trapped(self, is_horizontal: bool) -> None:
        mid = fmt(self.cell_midpoint)
        start = fmt(self.cell_midpoint - self.trap_thickness)
        bar = fmt(2 * self.trap_thickness)
        back = fmt(self.trap_thickness + self.cell_midpoint)
        if is_horizontal:
            self._doors.append(f"m{start},{mid}h{bar}m-{back},-{mid}")
        else:
            self._doors.append(f"m{mid},{start}v{bar}m-{mid},-{back}")

    def _draw_portcullis(self, is_horizontal: bool) -> None:
        mid = fmt(self.cell_midpoint)
        inset = fmt(self.jamb_width + 1)
        slat, gap = ("v1", "m0,1") if is_horizontal else ("h1", "m1,0")
        parts = [f"m{mid},{inset}" if is_horizontal else f"m{inset},{mid}"]
        i = 0
        while i < self.door_width:
            if i:
                parts.append(gap)
            parts.append(slat)
            i += 2
        back = fmt(i + self.jamb_width)
        parts.append(f"m-{mid},-{back}" if is_horizontal else f"m-{back},-{mid}")
        self._doors.append("".join(parts))

    def _draw_secret(self, door: DungeonDoor) -> None:
        col = door.tile_id % self.width
        row = door.tile_id // self.width
        c = self.cell_size
        jamb = fmt(self.JAMB_THICKNESS)
        curve = fmt(self.trap_thickness)
        half_door = fmt(self.door_width / 2)
        half_thickness = fmt(self.door_thickness / 2)
        parts = [f"M{fmt(c * (col + self.map_padding))},{fmt(c * (row + self.map_padding))}"]
        if door.is_horizontal:
            start_x = fmt(self.cell_midpoint + self.door_thickness / 2 + self.JAMB_THICKNESS)
            parts.append(
                f"m{start_x},{fmt(self.jamb_width + 1)}h-{jamb}"
                f"c-{curve},0,-{curve},{half_door},-{half_thickness},{half_door}"
                f"s{curve},{half_door},-{half_thickness},{half_door}"
                f"h-{jamb}"
            )
        else:
            start_y = fmt(self.cell_midpoint - self.door_thickness / 2 - self.JAMB_THICKNESS)
            parts.append(
                f"m{fmt(self.jamb_width + 1)},{start_y}v{jamb}"
                f"c0,{curve},{half_door},{curve},{half_door},{half_thickness}"
                f"s{half_door},-{curve},{half_door},{half_thickness}"
                f"v{jamb}"
            )
        self._secrets.append("".join(parts))

    @property
    def pixel_width(self) -> Number:
        return (self.width + 2 * self.map_padding) * self.cell_size

    @property
    def pixel_height(self) -> Number:
        return (self.height + 2 * self.map_padding) * self.cell_size

    def _svg_head(self) -> str:
        scale = self._config.scale
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{fmt(self.pixel_width * scale)}" '
            f'height="{fmt(self.pixel_height * scale)}" '
            f'viewBox="0 0 {fmt(self.pixel_width)} {fmt(self.pixel_height)}">'
        )

    def _svg_style(self) -> str:
        colors = self._config.colors
        return (
            '<defs><style type="text/css"><![CDATA['
            f"\n    #dungeonBackground {{ fill: {colors.background_fill}; }}"
            f"\n    #dungeonForeground {{ stroke: {colors.foreground_stroke}; fill: {colors.foreground_fill}; }}"
            f"\n    #dungeonDoors {{ stroke: {colors.foreground_stroke}; fill: {colors.background_fill}; }}"
            f"\n    #dungeonSecrets {{ stroke: {colors.text_stroke}; fill: transparent; }}"
            "]]></style></defs>"
        )

    def draw(self) -> str:
        self._require("draw", CanvasState.SPACES_FILLED, CanvasState.DOORS_FILLED)
        self.state = CanvasState.DRAWN
        return "\n".join(
            [
                self._svg_head(),
                self._svg_style(),
                f'<rect id="dungeonBackground" width="{fmt(self.pixel_width)}" height="{fmt(self.pixel_height)}"/>',
                f'<path id="dungeonForeground" d="{self.foreground_path}"/>',
                f'<path id="dungeonDoors" d="{self.door_path}"/>',
                f'<path id="dungeonSecrets" d="{self.secret_path}"/>',
                "</svg>",
            ]
        )


def render_map(layout: DungeonLayout, config: DungeonCanvasConfig, html: bool = False) -> str:
    canvas = DungeonCanvas(config)
    canvas.fill_spaces(layout.foreground_tiles)
    canvas.fill_doors(layout.doors)
    svg = canvas.draw()
    logger.info("map_rendered", width=layout.width, height=layout.height, doors=len(layout.doors))
    if html:
        return f"<html>\n<body>\n{svg}\n</body>\n</html>"
    return svg
