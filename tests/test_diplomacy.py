"""Tests for diplomacy between realms."""

import numpy as np
import pytest

from py_realmgen.core.diplomacy import (
    DiplomacyOptions,
    DiplomacySimulator,
    declare_war,
    form_alliance,
    polity_adjacency,
    realm_adjacency,
)
from py_realmgen.core.hierarchy import compute_power, set_suzerain
from py_realmgen.core.models import County, Polity, WorldState
from py_realmgen.core.prng import SeededPRNG


def strip_state(owners, width=None):
    """One row of single-cell counties; `owners[i]` owns county i."""
    width = width or len(owners)
    state = WorldState(seed="diplomacy", width=width, height=1)
    state.county_grid = np.arange(width, dtype=np.int32)
    for cid, pid in enumerate(owners):
        state.counties[cid] = County(
            id=cid, name=f"C{cid}", capital_seed=(cid, 0), cells=[cid], polity=pid, development=10
        )
        if pid not in state.polities:
            state.polities[pid] = Polity(id=pid, name=f"P{pid}", capital_county=cid)
        state.polities[pid].counties.append(cid)
    return state


class TestRelations:
    """Test symmetric relation helpers."""

    def test_war_is_symmetric(self):
        a = Polity(id=0, name="A", capital_county=0)
        b = Polity(id=1, name="B", capital_county=1)
        assert declare_war(a, b)
        assert a.at_war_with == [1]
        assert b.at_war_with == [0]

    def test_repeat_war_is_noop(self):
        a = Polity(id=0, name="A", capital_county=0)
        b = Polity(id=1, name="B", capital_county=1)
        declare_war(a, b)
        assert not declare_war(b, a)
        assert a.at_war_with == [1]

    def test_no_self_relations(self):
        a = Polity(id=0, name="A", capital_county=0)
        assert not declare_war(a, a)
        assert not form_alliance(a, a)
        assert a.at_war_with == []
        assert a.allies == []

    def test_alliance_is_symmetric(self):
        a = Polity(id=0, name="A", capital_county=0)
        b = Polity(id=1, name="B", capital_county=1)
        assert form_alliance(b, a)
        assert a.allies == [1]
        assert b.allies == [0]


class TestAdjacency:
    """Test polity and realm borders."""

    def test_polity_adjacency(self):
        state = strip_state([0, 1, 1, 2])
        adjacency = polity_adjacency(state)
        assert adjacency == {0: [1], 1: [0, 2], 2: [1]}

    def test_realm_adjacency_merges_vassals(self):
        """A vassal's border counts for its realm."""
        state = strip_state([0, 1, 2, 2])
        set_suzerain(state.polities, 1, 0)
        assert realm_adjacency(state) == {0: [2], 2: [0]}


class TestDiplomacySimulator:
    """Test opinions, alliances and wars."""

    def test_opinion_modifiers(self):
        """Same culture and religion across a border at equal power."""
        state = strip_state([0, 1])
        for polity in state.polities.values():
            polity.culture = 0
            polity.religion = 1
            polity.power = 10.0
        DiplomacySimulator(state, SeededPRNG("opinions")).compute_opinions()
        assert state.polities[0].opinions == {1: 20 + 30 - 15}
        assert state.polities[1].opinions == {0: 35}

    def test_opinion_of_suzerain_and_vassal(self):
        state = strip_state([0, 1, 2])
        set_suzerain(state.polities, 1, 0)
        for polity in state.polities.values():
            polity.power = 10.0
        DiplomacySimulator(state, SeededPRNG("opinions")).compute_opinions()
        # Border friction plus the overlord bonus
        assert state.polities[1].opinions[0] == -15 + 50
        assert state.polities[0].opinions[1] == -15 + 25
        assert state.polities[0].opinions[2] == 0

    def test_weaker_neighbours_are_liked(self):
        state = strip_state([0, 1])
        state.polities[0].power = 20.0
        state.polities[1].power = 10.0
        DiplomacySimulator(state, SeededPRNG("opinions")).compute_opinions()
        assert state.polities[0].opinions[1] == -15 + 5

    def test_half_opinion_rounds_up(self):
        # Polities 0 and 1 do not touch, so only the power gap counts: (1 - 3/4) * 10
        state = strip_state([0, 2, 1])
        state.polities[0].power = 4.0
        state.polities[1].power = 3.0
        state.polities[2].power = 4.0
        DiplomacySimulator(state, SeededPRNG("opinions")).compute_opinions()
        assert state.polities[0].opinions[1] == 3

    def test_alliances_stop_with_few_unaligned(self):
        state = strip_state([0, 1])
        for polity in state.polities.values():
            polity.realm_power = 10.0
        sim = DiplomacySimulator(state, SeededPRNG("blocs"))
        assert sim.form_alliances() == []

    def test_certain_alliance_joins_neighbours(self):
        state = strip_state([0, 1, 2, 3])
        for pid, polity in state.polities.items():
            polity.realm_power = 40.0 - pid
        options = DiplomacyOptions(bloc_join_chance=1.0, max_blocs=1)
        blocs = DiplomacySimulator(state, SeededPRNG("blocs"), options).form_alliances()

        assert blocs == [[0, 1, 2, 3]]
        for polity in state.polities.values():
            assert polity.alliance == 0
            assert sorted(polity.allies) == sorted(set(range(4)) - {polity.id})

    def test_border_wars_skip_allies(self):
        state = strip_state([0, 1, 2])
        options = DiplomacyOptions(border_war_chance=1.0, great_war_chance=0.0)
        sim = DiplomacySimulator(state, SeededPRNG("wars"), options)
        state.polities[0].alliance = 0
        state.polities[1].alliance = 0
        sim.declare_wars()

        assert state.polities[0].at_war_with == []
        assert state.polities[1].at_war_with == [2]
        assert state.polities[2].at_war_with == [1]

    def test_unaligned_neighbours_stay_at_peace(self):
        state = strip_state([0, 1])
        options = DiplomacyOptions(border_war_chance=1.0)
        DiplomacySimulator(state, SeededPRNG("wars"), options).declare_wars()
        assert all(not p.at_war_with for p in state.polities.values())


class TestGeneratedDiplomacy:
    """Relations in a generated world."""

    @pytest.fixture
    def world(self, alpha_world):
        return alpha_world[0]

    def test_relations_symmetric(self, world):
        for pid, polity in world.polities.items():
            assert pid not in polity.allies
            assert pid not in polity.at_war_with
            for other in polity.allies:
                assert pid in world.polities[other].allies
            for other in polity.at_war_with:
                assert pid in world.polities[other].at_war_with

    def test_laws_only_on_realms(self, world):
        for polity in world.polities.values():
            if polity.suzerain is None:
                assert polity.laws is not None
            else:
                assert polity.laws is None

    def test_opinions_cover_other_polities(self, world):
        for pid, polity in world.polities.items():
            assert pid not in polity.opinions


class TestVassalization:
    """Great powers taking weaker realms as vassals."""

    @pytest.fixture
    def state(self):
        # Realm 0 borders realm 1; a water cell separates realm 2
        state = strip_state([0, 0, 0, 0, 1, 2], width=7)
        state.county_grid = np.array([0, 1, 2, 3, 4, -1, 5], dtype=np.int32)
        state.counties[5].cells = [6]
        compute_power(state.polities, state.counties)
        return state

    def test_great_power_takes_neighbour(self, state):
        options = DiplomacyOptions(
            great_powers=1,
            isolationism_chance=0.0,
            vassalization_chance=0.0,
            adjacent_vassalization_chance=1.0,
        )
        before = state.polities[0].realm_power
        vassalized = DiplomacySimulator(state, SeededPRNG("great"), options).vassalize_great_powers()

        assert vassalized == 1
        assert state.polities[1].suzerain == 0
        assert state.polities[0].vassals == [1]
        assert state.polities[2].suzerain is None
        assert state.polities[0].realm_power == pytest.approx(40.0 + 0.4 * 10.0)
        assert state.polities[0].realm_power > before

    def test_distant_realm_uses_base_chance(self, state):
        options = DiplomacyOptions(
            great_powers=1,
            isolationism_chance=0.0,
            vassalization_chance=1.0,
            adjacent_vassalization_chance=0.0,
        )
        DiplomacySimulator(state, SeededPRNG("great"), options).vassalize_great_powers()
        assert state.polities[1].suzerain is None
        assert state.polities[2].suzerain == 0

    def test_isolationist_power_stays_home(self, state):
        options = DiplomacyOptions(
            great_powers=1,
            isolationism_chance=1.0,
            vassalization_chance=1.0,
            adjacent_vassalization_chance=1.0,
        )
        vassalized = DiplomacySimulator(state, SeededPRNG("great"), options).vassalize_great_powers()
        assert vassalized == 0
        assert all(p.suzerain is None for p in state.polities.values())

    def test_comparable_realms_left_alone(self, state):
        state.counties[4].development = 20
        compute_power(state.polities, state.counties)
        options = DiplomacyOptions(
            great_powers=1,
            isolationism_chance=0.0,
            vassalization_chance=0.0,
            adjacent_vassalization_chance=1.0,
        )
        # 40 / 20 is under the power ratio
        assert DiplomacySimulator(state, SeededPRNG("great"), options).vassalize_great_powers() == 0
        assert state.polities[1].suzerain is None
