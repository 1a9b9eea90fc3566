"""
Tests for route ranking and selection.
"""

from decimal import Decimal

import pytest

from routeviz.core.errors import IndexOutOfRange
from routeviz.core.routes import Hop, Route, RouteSet, rank_route_set, rank_routes
from routeviz.core.routes.ranking import route_sort_key


SOL = "So11111111111111111111111111111111111111112"
MSOL = "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _hop(label, input_mint, output_mint, out_amount):
    return Hop(
        venue_id=f"{label}-amm",
        venue_label=label,
        input_mint=input_mint,
        output_mint=output_mint,
        in_amount=1_000,
        out_amount=out_amount,
    )


def _route(out_amount, impact="0", venues=("Orca",)):
    if len(venues) == 1:
        hops = (_hop(venues[0], SOL, USDC, out_amount),)
    else:
        hops = (_hop(venues[0], SOL, MSOL, 900), _hop(venues[1], MSOL, USDC, out_amount))
    return Route(
        hops=hops,
        input_mint=SOL,
        output_mint=USDC,
        in_amount=1_000,
        out_amount=out_amount,
        price_impact_pct=Decimal(impact),
    )


class TestRankRoutes:
    def test_higher_output_first(self):
        routes = [_route(100), _route(300), _route(200)]

        ranked = rank_routes(routes)

        assert [r.out_amount for r in ranked] == [300, 200, 100]

    def test_lower_price_impact_breaks_output_ties(self):
        high = _route(100, impact="1.5")
        low = _route(100, impact="0.2")

        assert rank_routes([high, low]) == (low, high)

    def test_fewer_hops_breaks_remaining_ties(self):
        two_hop = _route(100, venues=("Orca", "Raydium"))
        one_hop = _route(100, venues=("Meteora",))

        ranked = rank_routes([two_hop, one_hop])

        assert ranked[0] is one_hop

    def test_full_ties_keep_response_order(self):
        first = _route(100, venues=("Orca",))
        second = _route(100, venues=("Phoenix",))

        ranked = rank_routes([first, second])

        assert ranked[0] is first
        assert ranked[1] is second

    def test_ranking_is_idempotent(self):
        ranked = rank_routes([_route(5), _route(9, "2"), _route(9, "1"), _route(1)])

        assert rank_routes(ranked) == ranked

    def test_sort_key(self):
        route = _route(42, impact="0.5", venues=("Orca", "Raydium"))

        assert route_sort_key(route) == (-42, Decimal("0.5"), 2)

    def test_two_hop_route_wins_when_no_single_hop_beats_it(self):
        orca_raydium = _route(1_450, impact="0.42", venues=("Orca", "Raydium"))
        single = _route(1_440, impact="0.10", venues=("Meteora",))

        ranked = rank_routes([single, orca_raydium])

        assert ranked[0] is orca_raydium


class TestRouteSetSelection:
    @pytest.fixture
    def route_set(self):
        return rank_route_set(RouteSet(routes=(_route(1), _route(3), _route(2))))

    def test_rank_route_set_resets_selection(self):
        unranked = RouteSet(routes=(_route(1), _route(3)), selected_index=1, compare_all=True)

        ranked = rank_route_set(unranked)

        assert ranked.selected_index == 0
        assert ranked.compare_all is False
        assert ranked.best_route.out_amount == 3
        assert ranked.selected_route is ranked.best_route

    def test_select_returns_new_set(self, route_set):
        selected = route_set.select(2)

        assert selected.selected_index == 2
        assert selected.selected_route.out_amount == 1
        assert route_set.selected_index == 0
        assert selected.routes is route_set.routes

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_select_out_of_range(self, route_set, index):
        with pytest.raises(IndexOutOfRange) as exc:
            route_set.select(index)

        assert isinstance(exc.value, IndexError)
        assert exc.value.route_count == 3

    def test_select_on_empty_set(self):
        with pytest.raises(IndexOutOfRange):
            RouteSet().select(0)

    def test_toggle_compare_all(self, route_set):
        toggled = route_set.toggle_compare_all()

        assert toggled.compare_all is True
        assert toggled.toggle_compare_all().compare_all is False
        assert toggled.selected_index == route_set.selected_index
