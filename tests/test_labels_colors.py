"""Tests for label anchors and display colors."""

import pytest

from py_realmgen.core.colors import (
    FOLK_RELIGION_COLOR,
    assign_colors,
    color_polities,
    hsl,
    hue_of,
)
from py_realmgen.core.hierarchy import set_suzerain
from py_realmgen.core.labels import label_position, pole_of_inaccessibility
from py_realmgen.core.models import Culture, Polity, Religion, ReligionType, SubCulture, WorldState
from py_realmgen.core.prng import seeded_random


def hue_distance(a, b):
    diff = abs(a - b) % 360
    return min(diff, 360 - diff)


class TestLabels:
    """Test label anchor selection."""

    def test_square_pole_is_centre(self):
        cells = [y * 5 + x for y in range(5) for x in range(5)]
        assert pole_of_inaccessibility(cells, 5) == (2, 2)
        assert label_position(cells, 5) == (2, 2)

    def test_offset_territory(self):
        """Poles are reported in grid coordinates, not bounding-box ones."""
        width = 20
        cells = [y * width + x for y in range(10, 13) for x in range(4, 11)]
        assert pole_of_inaccessibility(cells, width) == (5, 11)

    def test_small_territory_uses_centroid(self):
        assert label_position([0, 1, 2], 5) == (1, 0)

    def test_centroid_rounds_half_up(self):
        assert label_position([0, 1], 5) == (1, 0)

    def test_empty_territory(self):
        assert label_position([], 5) is None
        assert pole_of_inaccessibility([], 5) is None

    def test_generated_world_is_labelled(self, alpha_world):
        world, _ = alpha_world
        for county in world.counties.values():
            assert county.label_position is not None
        for polity in world.polities.values():
            assert polity.label_position is not None


class TestColors:
    """Test hsl() colors."""

    def test_hsl_wraps_and_floors(self):
        assert hsl(370.7, 70, 60) == "hsl(10, 70%, 60%)"
        assert hsl(-30, 55, 45) == "hsl(330, 55%, 45%)"

    def test_hue_of(self):
        assert hue_of("hsl(215, 70%, 60%)") == 215.0

    def test_vassals_share_realm_hue(self):
        state = WorldState(seed="colors", width=1, height=1)
        for pid in range(4):
            state.polities[pid] = Polity(id=pid, name=f"P{pid}", capital_county=pid)
        set_suzerain(state.polities, 1, 0)
        set_suzerain(state.polities, 2, 1)

        color_polities(state, seeded_random("colors"))
        polities = state.polities
        assert polities[0].color.endswith("70%, 60%)")
        assert polities[2].color.endswith("55%, 45%)")
        assert hue_of(polities[2].color) == hue_of(polities[0].color)
        assert hue_distance(hue_of(polities[3].color), hue_of(polities[0].color)) == pytest.approx(
            137.5, abs=1
        )

    def test_sociology_colors(self):
        state = WorldState(seed="colors", width=1, height=1)
        state.cultures = [Culture(id=0, name="Arn"), Culture(id=1, name="Belk")]
        state.sub_cultures = [SubCulture(id=0, name="Arn", parent_culture=0)]
        state.religions = [
            Religion(id=0, name="Folk Faith", type=ReligionType.FOLK),
            Religion(id=1, name="Arnism", type=ReligionType.CULTURAL, origin_culture=0),
        ]
        assign_colors(state, seeded_random("colors"))

        assert state.religions[0].color == FOLK_RELIGION_COLOR
        assert state.religions[1].color.startswith("hsl(")
        parent_hue = hue_of(state.cultures[0].color)
        sub_hue = hue_of(state.sub_cultures[0].color)
        assert hue_distance(sub_hue, parent_hue) <= 11
        assert hue_distance(hue_of(state.cultures[1].color), parent_hue) == pytest.approx(180, abs=1)
