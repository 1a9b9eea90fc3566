"""
Tests for quote response normalization.
"""

from decimal import Decimal

import pytest

from routeviz.core.errors import MalformedResponse
from routeviz.core.routes import TokenDescriptor, normalize_quote_response, route_payload
from routeviz.core.routes.models import QuoteParams
from routeviz.core.routes.normalizer import parse_amount, parse_price_impact


SOL = "So11111111111111111111111111111111111111112"
MSOL = "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _step(label, input_mint, output_mint, in_amount, out_amount, **extra):
    swap_info = {
        "ammKey": f"{label.lower()}-amm",
        "label": label,
        "inputMint": input_mint,
        "outputMint": output_mint,
        "inAmount": str(in_amount),
        "outAmount": str(out_amount),
    }
    swap_info.update(extra.pop("swap_info", {}))
    step = {"swapInfo": swap_info}
    step.update(extra)
    return step


def _two_hop_route(out_amount="1450000000", price_impact="0.42"):
    return {
        "inputMint": SOL,
        "outputMint": USDC,
        "inAmount": "10000000000",
        "outAmount": out_amount,
        "otherAmountThreshold": "1442750000",
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "priceImpactPct": price_impact,
        "routePlan": [
            _step("Orca", SOL, MSOL, 10000000000, 9100000000, percent=100),
            _step("Raydium", MSOL, USDC, 9100000000, int(out_amount), percent=100),
        ],
    }


@pytest.fixture
def params():
    return QuoteParams(
        input_token=TokenDescriptor(address=SOL, symbol="SOL", decimals=9),
        output_token=TokenDescriptor(address=USDC, symbol="USDC", decimals=6),
        amount=Decimal("10"),
        amount_minor=10_000_000_000,
        slippage_bps=50,
    )


class TestSingleRouteShape:
    def test_route_plan_body_yields_one_route(self, params):
        route_set = normalize_quote_response(_two_hop_route(), params)

        assert len(route_set) == 1
        route = route_set.routes[0]
        assert route.hop_count == 2
        assert route.venues == ("Orca", "Raydium")
        assert route.in_amount == 10_000_000_000
        assert route.out_amount == 1_450_000_000
        assert route.price_impact_pct == Decimal("0.42")
        assert route.other_amount_threshold == 1_442_750_000
        assert route_set.request == params

    def test_hop_fields(self):
        route = normalize_quote_response(_two_hop_route()).routes[0]
        first, second = route.hops

        assert first.venue_id == "orca-amm"
        assert first.protocol == "Orca"
        assert first.input_mint == SOL
        assert first.output_mint == MSOL
        assert first.out_amount == 9_100_000_000
        assert second.protocol == "Raydium"
        assert second.output_mint == USDC

    def test_defaults_for_missing_optional_fields(self):
        payload = {
            "inputMint": SOL,
            "outputMint": USDC,
            "inAmount": "100",
            "outAmount": "15",
            "routePlan": [_step("Meteora DLMM", SOL, USDC, 100, 15)],
        }

        route = normalize_quote_response(payload).routes[0]

        assert route.slippage_bps == 50
        assert route.other_amount_threshold == 0
        assert route.swap_mode == "ExactIn"
        assert route.price_impact_pct == Decimal("0")
        hop = route.hops[0]
        assert hop.fee_amount == 0
        assert hop.fee_mint == SOL
        assert hop.percent == 100

    def test_label_falls_back_to_amm_key(self):
        step = {"swapInfo": {"ammKey": "pool-1", "inputMint": SOL, "outputMint": USDC, "inAmount": 1, "outAmount": 2}}
        payload = {"inAmount": "1", "outAmount": "2", "routePlan": [step]}

        route = normalize_quote_response(payload).routes[0]

        assert route.hops[0].venue_label == "pool-1"
        assert route.hops[0].protocol == "Unknown"
        # Route mints come from the hop chain when absent
        assert route.input_mint == SOL
        assert route.output_mint == USDC

    def test_direct_route_uses_request_mints(self, params):
        payload = {"inAmount": "10000000000", "outAmount": "1400000000", "routePlan": []}

        route = normalize_quote_response(payload, params).routes[0]

        assert route.is_direct
        assert route.input_mint == SOL
        assert route.output_mint == USDC

    def test_raw_payload_is_a_private_copy(self):
        payload = _two_hop_route()
        route = normalize_quote_response(payload).routes[0]

        payload["outAmount"] = "0"
        copied = route_payload(route)
        copied["routePlan"].clear()

        assert route.raw["outAmount"] == "1450000000"
        assert len(route.raw["routePlan"]) == 2


class TestRoutesListShape:
    def test_n_routes_in_n_routes_out_in_response_order(self):
        payload = {"routes": [_two_hop_route("1"), _two_hop_route("3"), _two_hop_route("2")]}

        route_set = normalize_quote_response(payload)

        assert [route.out_amount for route in route_set] == [1, 3, 2]
        assert route_set.selected_index == 0
        assert route_set.compare_all is False

    def test_empty_routes_list(self):
        assert normalize_quote_response({"routes": []}).is_empty

    def test_element_errors_carry_the_index(self):
        bad = _two_hop_route()
        del bad["outAmount"]

        with pytest.raises(MalformedResponse, match=r"routes\[1\]"):
            normalize_quote_response({"routes": [_two_hop_route(), bad]})

    def test_element_without_route_plan_is_malformed(self):
        with pytest.raises(MalformedResponse):
            normalize_quote_response({"routes": [{"inAmount": "1", "outAmount": "1"}]})


class TestEmptyAndMalformed:
    def test_empty_object_is_no_route_not_an_error(self, params):
        route_set = normalize_quote_response({}, params)

        assert route_set.is_empty
        assert route_set.selected_route is None
        assert route_set.request == params

    @pytest.mark.parametrize("payload", [None, [], "routes", 42])
    def test_non_object_body(self, payload):
        with pytest.raises(MalformedResponse):
            normalize_quote_response(payload)

    def test_broken_hop_chain(self):
        payload = _two_hop_route()
        payload["routePlan"][1]["swapInfo"]["inputMint"] = USDC

        with pytest.raises(MalformedResponse, match="hop chain broken"):
            normalize_quote_response(payload)

    def test_last_hop_must_produce_route_output(self):
        payload = _two_hop_route()
        payload["outputMint"] = MSOL

        with pytest.raises(MalformedResponse, match="last hop"):
            normalize_quote_response(payload)

    def test_hop_without_swap_info(self):
        payload = _two_hop_route()
        payload["routePlan"][0] = {"percent": 100}

        with pytest.raises(MalformedResponse, match="swapInfo"):
            normalize_quote_response(payload)

    def test_non_numeric_price_impact(self):
        with pytest.raises(MalformedResponse):
            normalize_quote_response(_two_hop_route(price_impact="n/a"))

    @pytest.mark.parametrize("percent", [33.7, float("nan"), float("inf"), "50"])
    def test_fractional_or_non_numeric_percent(self, percent):
        payload = _two_hop_route()
        payload["routePlan"][0]["percent"] = percent

        with pytest.raises(MalformedResponse, match=r"routePlan\[0\]\.percent"):
            normalize_quote_response(payload)

    def test_whole_float_percent_is_accepted(self):
        payload = _two_hop_route()
        payload["routePlan"][0]["percent"] = 100.0

        route = normalize_quote_response(payload).routes[0]

        assert route.hops[0].percent == 100
        assert isinstance(route.hops[0].percent, int)


class TestScalarParsing:
    @pytest.mark.parametrize("value,expected", [(0, 0), (15, 15), ("42", 42), (" 7 ", 7)])
    def test_amounts(self, value, expected):
        assert parse_amount(value, "amount") == expected

    @pytest.mark.parametrize("value", [1.5, True, -1, "1e3", "abc", None])
    def test_rejected_amounts(self, value):
        with pytest.raises(MalformedResponse):
            parse_amount(value, "amount")

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, Decimal("0")),
            ("", Decimal("0")),
            ("0.42", Decimal("0.42")),
            (4.0, Decimal("4.0")),
            (0.1, Decimal("0.1")),
            (3, Decimal("3")),
        ],
    )
    def test_price_impact(self, value, expected):
        assert parse_price_impact(value) == expected

    @pytest.mark.parametrize("value", ["NaN", "inf", True])
    def test_rejected_price_impact(self, value):
        with pytest.raises(MalformedResponse):
            parse_price_impact(value)
