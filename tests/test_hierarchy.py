"""Tests for vassal hierarchy aggregation and titles."""

import pytest

from py_realmgen.core.exceptions import InvariantViolationError
from py_realmgen.core.hierarchy import (
    check_acyclic,
    compute_power,
    realm_counties,
    realm_of,
    roots,
    set_suzerain,
    subtree,
    top_down_order,
)
from py_realmgen.core.models import County, Government, Polity
from py_realmgen.core.titles import (
    BARONY_THRESHOLD,
    LOWEST_RANK,
    TITLE_RANKS,
    assign_titles,
    feudal_title,
    independent_title,
    preliminary_title,
    title_rank,
    vassal_title,
)


def make_counties(developments):
    return {
        cid: County(id=cid, name=f"C{cid}", capital_seed=(cid, 0), cells=[cid], development=dev)
        for cid, dev in enumerate(developments)
    }


def make_polities(n):
    return {pid: Polity(id=pid, name=f"P{pid}", capital_county=pid, counties=[pid]) for pid in range(n)}


class TestHierarchy:
    """Test traversal and realm power."""

    @pytest.fixture
    def realm(self):
        """0 rules 1 and 2; 1 rules 3."""
        polities = make_polities(4)
        set_suzerain(polities, 1, 0)
        set_suzerain(polities, 2, 0)
        set_suzerain(polities, 3, 1)
        return polities

    def test_roots_and_realm_of(self, realm):
        assert roots(realm) == [0]
        assert realm_of(realm, 3) == 0

    def test_subtree_pre_order(self, realm):
        assert subtree(realm, 0) == [0, 1, 3, 2]
        assert subtree(realm, 2) == [2]

    def test_top_down_order_suzerains_first(self, realm):
        order = top_down_order(realm)
        position = {pid: i for i, pid in enumerate(order)}
        for pid, polity in realm.items():
            if polity.suzerain is not None:
                assert position[polity.suzerain] < position[pid]

    def test_realm_power_shares(self, realm):
        """Own power plus 40% of the strongest vassal and 20% of the rest."""
        counties = make_counties([100, 50, 30, 10])
        compute_power(realm, counties)

        assert realm[3].realm_power == pytest.approx(10)
        assert realm[1].realm_power == pytest.approx(50 + 0.4 * 10)
        assert realm[2].realm_power == pytest.approx(30)
        assert realm[0].realm_power == pytest.approx(100 + 0.4 * 54 + 0.2 * 30)

    def test_realm_power_at_least_power(self, realm):
        compute_power(realm, make_counties([1, 2, 3, 4]))
        for polity in realm.values():
            assert polity.realm_power >= polity.power

    def test_realm_average_development(self, realm):
        compute_power(realm, make_counties([100, 50, 30, 10]))
        assert realm[0].realm_avg_development == pytest.approx(190 / 4)
        assert realm[1].realm_avg_development == pytest.approx(30)

    def test_realm_counties(self, realm):
        assert sorted(realm_counties(realm, 1)) == [1, 3]

    def test_cycle_rejected(self, realm):
        with pytest.raises(InvariantViolationError):
            set_suzerain(realm, 0, 3)

    def test_moving_vassal_updates_both_sides(self, realm):
        set_suzerain(realm, 3, 2)
        assert 3 not in realm[1].vassals
        assert realm[2].vassals == [3]
        assert realm[3].suzerain == 2

    def test_check_acyclic_detects_loop(self):
        polities = make_polities(2)
        polities[0].suzerain = 1
        polities[1].suzerain = 0
        with pytest.raises(InvariantViolationError):
            check_acyclic(polities)


class TestTitles:
    """Test the title ladder and government vocabulary."""

    def test_feudal_thresholds(self):
        rand = lambda: 0.9
        assert feudal_title(1500, rand) == "Empire"
        assert feudal_title(600, rand) == "Kingdom"
        assert feudal_title(300, rand) == "Grand Duchy"
        assert feudal_title(300, lambda: 0.1) == "Principality"
        assert feudal_title(150, rand) == "Duchy"
        assert feudal_title(50, rand) == "County"
        assert feudal_title(5, rand) == "Barony"

    def test_preliminary_tiers(self):
        assert preliminary_title(700) == "Empire"
        assert preliminary_title(400) == "Kingdom"
        assert preliminary_title(250) == "Principality"
        assert preliminary_title(100) == "Other"

    def test_independent_never_barony(self):
        polity = Polity(id=0, name="Tiny", capital_county=0, realm_power=3)
        assert independent_title(polity, lambda: 0.5) == "County"

    def test_government_vocabulary(self):
        tribal = Polity(
            id=0, name="T", capital_county=0, government=Government.TRIBAL_FEDERATION,
            realm_power=150, vassals=[1],
        )
        assert independent_title(tribal, lambda: 0.5) == "High Chieftaincy"
        tribal.vassals = []
        assert independent_title(tribal, lambda: 0.5) == "Chieftaincy"

        republic = Polity(
            id=1, name="R", capital_county=1, government=Government.MERCHANT_REPUBLIC,
            realm_power=250, realm_avg_development=25,
        )
        assert independent_title(republic, lambda: 0.5) == "Serene Republic"
        republic.realm_avg_development = 10
        assert independent_title(republic, lambda: 0.5) == "Republic"

    def test_imperial_vassals_are_princes(self):
        empire = Polity(
            id=0, name="E", capital_county=0, title="Empire",
            government=Government.IMPERIAL_CONFEDERATION,
        )
        vassal = Polity(id=1, name="V", capital_county=1, suzerain=0, realm_power=50)
        assert vassal_title(vassal, empire, lambda: 0.5) == "Principality"
        vassal.realm_power = BARONY_THRESHOLD - 1
        assert title_rank(vassal_title(vassal, empire, lambda: 0.5)) >= TITLE_RANKS["County"]

    def test_vassal_ranks_below_suzerain(self):
        """A strong vassal of a weak lord is pushed one rank below it."""
        duchy = Polity(id=0, name="D", capital_county=0, title="Duchy")
        vassal = Polity(id=1, name="V", capital_county=1, suzerain=0, realm_power=800)
        assert vassal_title(vassal, duchy, lambda: 0.5) == "County"

    def test_bottom_rank_repeats(self):
        barony = Polity(id=0, name="B", capital_county=0, title="Barony")
        vassal = Polity(id=1, name="V", capital_county=1, suzerain=0, realm_power=50)
        assert vassal_title(vassal, barony, lambda: 0.5) == "Barony"
        assert title_rank("Unknown") == LOWEST_RANK

    def test_below_barony_threshold_never_outranks_county(self):
        """Realms under the Barony threshold rank County-equivalent or lower."""
        polities = make_polities(3)
        set_suzerain(polities, 1, 0)
        set_suzerain(polities, 2, 1)
        compute_power(polities, make_counties([5, 3, 2]))
        assign_titles(polities, top_down_order(polities), lambda: 0.5)

        for polity in polities.values():
            assert polity.realm_power < BARONY_THRESHOLD
            assert title_rank(polity.title) >= TITLE_RANKS["County"]
