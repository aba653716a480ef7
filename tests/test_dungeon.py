"""Tests for dungeon layout parsing."""

import pytest

from dmbinder.dungeon import DoorType, DungeonDoor, layout_from_rows, load_layout, parse_layout


class TestDoorType:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (0, DoorType.ARCH),
            (5, DoorType.PORTCULLIS),
            ("secret", DoorType.SECRET),
            ("Locked", DoorType.LOCKED),
            ("4", DoorType.TRAPPED),
            (DoorType.REGULAR, DoorType.REGULAR),
        ],
    )
    def test_parse(self, raw, expected):
        assert DoorType.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["drawbridge", 9, True, None])
    def test_parse_rejects(self, raw):
        with pytest.raises(ValueError):
            DoorType.parse(raw)


class TestParseLayout:
    def test_parses_tiles_and_doors(self):
        layout = parse_layout(
            {
                "width": 3,
                "height": 2,
                "tiles": [0, 1, 2, 4],
                "doors": [
                    {"tileId": 1, "doorType": "secret", "isHorizontal": True},
                    {"tileId": 4},
                ],
            }
        )

        assert (layout.width, layout.height) == (3, 2)
        assert layout.foreground_tiles == frozenset({0, 1, 2, 4})
        assert layout.doors == (
            DungeonDoor(tile_id=1, door_type=DoorType.SECRET, is_horizontal=True),
            DungeonDoor(tile_id=4, door_type=DoorType.REGULAR, is_horizontal=False),
        )
        assert layout.tile_id(1, 1) == 4

    def test_rejects_tiles_outside_grid(self):
        with pytest.raises(ValueError, match="outside"):
            parse_layout({"width": 2, "height": 2, "tiles": [0, 4]})

    def test_rejects_missing_size(self):
        with pytest.raises(ValueError, match="height"):
            parse_layout({"width": 2, "tiles": []})

    @pytest.mark.parametrize("tile_id", [-1, 3])
    def test_rejects_doors_outside_grid(self, tile_id):
        raw = {
            "width": 3,
            "height": 1,
            "tiles": [0, 1, 2],
            "doors": [{"tileId": tile_id}, {"tileId": 2, "doorType": "arch"}],
        }

        with pytest.raises(ValueError, match="Door tile ids outside"):
            parse_layout(raw)

    def test_rejects_door_without_tile(self):
        with pytest.raises(ValueError, match="tileId"):
            parse_layout({"width": 2, "height": 2, "doors": [{"doorType": 1}]})

    def test_to_dict_round_trips(self):
        raw = {
            "width": 2,
            "height": 1,
            "tiles": [0, 1],
            "doors": [{"tileId": 1, "doorType": "locked", "isHorizontal": False}],
        }

        assert parse_layout(raw).to_dict() == raw


class TestLayoutFromRows:
    def test_floor_and_door_orientation(self):
        layout = layout_from_rows(
            [
                "#####",
                "#.D.#",
                "#.#S#",
                "#####",
            ]
        )

        assert layout.width == 5
        assert layout.height == 4
        assert layout.foreground_tiles == frozenset({6, 7, 8, 11, 13})
        assert layout.doors == (
            DungeonDoor(tile_id=7, door_type=DoorType.REGULAR, is_horizontal=True),
            DungeonDoor(tile_id=13, door_type=DoorType.SECRET, is_horizontal=False),
        )

    def test_empty_rows_rejected(self):
        with pytest.raises(ValueError):
            layout_from_rows(["", "   "])

    def test_load_text_layout(self, write_file):
        path = write_file("cave.txt", "###\n#P#\n#.#\n")

        layout = load_layout(path)

        assert layout.foreground_tiles == frozenset({4, 7})
        assert layout.doors == (DungeonDoor(tile_id=4, door_type=DoorType.PORTCULLIS, is_horizontal=False),)

    def test_load_json_layout(self, write_file):
        path = write_file("room.json", {"width": 1, "height": 1, "tiles": [0]})

        assert load_layout(path).foreground_tiles == frozenset({0})
