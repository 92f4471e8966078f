import pytest
from PIL import Image

from spritepacker.bleed import AlphaFixAlgorithm
from spritepacker.combiner import SpriteCombiner, find_duplicates, trim_sprites, trim_whitespace
from spritepacker.geometry import Rectangle
from spritepacker.layout import MaxRectsLayout, RowLayout


def solid(width, height, color):
    return Image.new('RGBA', (width, height), color)


@pytest.fixture
def sprites():
    return {
        "red.png": solid(8, 8, (255, 0, 0, 255)),
        "green.png": solid(6, 4, (0, 255, 0, 255)),
        "blue.png": solid(4, 6, (0, 0, 255, 255)),
    }


class TestTrim:
    def test_crops_transparent_border(self):
        img = Image.new('RGBA', (10, 8), (0, 0, 0, 0))
        img.paste(solid(3, 2, (1, 2, 3, 255)), (4, 5))

        trimmed, left, top, width, height = trim_whitespace(img)

        assert (left, top, width, height) == (4, 5, 3, 2)
        assert trimmed.size == (3, 2)
        assert trimmed.getpixel((0, 0)) == (1, 2, 3, 255)

    def test_fully_transparent_image_is_kept(self):
        img = Image.new('RGBA', (5, 5), (0, 0, 0, 0))
        trimmed, left, top, width, height = trim_whitespace(img)
        assert trimmed.size == (5, 5)
        assert (left, top, width, height) == (0, 0, 5, 5)

    def test_trim_data_keeps_original_size(self):
        img = Image.new('RGBA', (10, 10), (0, 0, 0, 0))
        img.putpixel((7, 2), (9, 9, 9, 255))
        trimmed, trim_data = trim_sprites({"dot": img})

        assert trimmed["dot"].size == (1, 1)
        assert trim_data["dot"]["original_width"] == 10
        assert (trim_data["dot"]["trim_x"], trim_data["dot"]["trim_y"]) == (7, 2)


def test_find_duplicates_groups_identical_pixels():
    a = solid(2, 2, (1, 1, 1, 255))
    unique, aliases = find_duplicates({"a": a, "b": a.copy(), "c": solid(2, 2, (2, 2, 2, 255))})
    assert list(unique) == ["a", "c"]
    assert aliases == {"a": ["b"]}


class TestSpriteCombiner:
    def test_draws_sprites_at_their_placements(self, sprites):
        result = SpriteCombiner(MaxRectsLayout()).combine(sprites, 64, 64, margin=2,
                                                          algorithm=AlphaFixAlgorithm.NEAREST)

        assert result.dropped == []
        assert result.atlas.size == (64, 64)
        placements = dict(result.placements)
        assert set(placements) == set(sprites)
        for name, rect in placements.items():
            expected = sprites[name].getpixel((0, 0))
            assert result.atlas.getpixel((rect.x, rect.y)) == expected
            assert result.atlas.getpixel((rect.right - 1, rect.bottom - 1)) == expected
        assert result.occupancy == pytest.approx((64 + 24 + 24) / (64 * 64))

    def test_margin_is_bled_and_rest_left_clear(self):
        result = SpriteCombiner(RowLayout()).combine({"red": solid(2, 2, (255, 0, 0, 255))}, 16, 16,
                                                     margin=2, algorithm="gaussian")
        rect = dict(result.placements)["red"]
        assert rect == Rectangle(2, 2, 2, 2)

        assert result.atlas.getpixel((0, 0)) == (255, 0, 0, 0)
        assert result.atlas.getpixel((5, 5)) == (255, 0, 0, 0)
        assert result.atlas.getpixel((6, 6)) == (0, 0, 0, 0)
        assert result.color_map.getpixel((6, 6)) == (0, 0, 0, 255)
        assert result.color_map.getpixel((5, 0)) == (255, 0, 0, 255)

    def test_duplicates_share_a_placement(self, sprites):
        sprites["red_copy.png"] = sprites["red.png"].copy()
        result = SpriteCombiner(MaxRectsLayout()).combine(sprites, 64, 64, margin=1)

        placements = dict(result.placements)
        assert placements["red_copy.png"] == placements["red.png"]
        assert len(result.placements) == 4

    def test_sprites_that_do_not_fit_are_reported(self, sprites):
        sprites["huge.png"] = solid(100, 100, (1, 1, 1, 255))
        result = SpriteCombiner(MaxRectsLayout()).combine(sprites, 32, 32, margin=0)

        assert result.dropped == ["huge.png"]
        assert "huge.png" not in dict(result.placements)

    def test_atlas_data(self, sprites):
        result = SpriteCombiner(RowLayout()).combine(sprites, 64, 64, margin=0, algorithm="none")
        data = result.to_atlas_data("atlas.png", algorithm="none", layout="simple-row")

        assert list(data["frames"]) == ["blue.png", "green.png", "red.png"]
        assert data["frames"]["red.png"]["frame"] == {"x": 0, "y": 0, "w": 8, "h": 8}
        assert data["frames"]["red.png"]["trimmed"] is False
        assert data["meta"]["size"] == {"w": 64, "h": 64}
        assert data["meta"]["dropped"] == []
