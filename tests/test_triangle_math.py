"""Test triangle discovery and spread calculation."""

import pytest

from arbwatch.core.errors import InvalidQuote, InvalidSymbol
from arbwatch.core.triangle import (
    BUY,
    SELL,
    Triangle,
    TriangleLeg,
    calculate_triangle_spread,
    calculate_triangular_yield,
    evaluate_triangle,
    find_triangles,
)
from arbwatch.core.types import FeeModel, OpportunityKind, OpportunityResult, Quote

from tests.sample_data import SAMPLE_MARKETS, make_quote, scenario_triangle_quotes


def default_triangle():
    return Triangle.from_pairs(["BTC/USDT", "ETH/BTC", "ETH/USDT"], "USDT")


class TestTriangle:
    """Test Triangle class."""

    def test_triangle_creation(self):
        """Test triangle creation and properties."""
        triangle = Triangle("USDT", "ETH", "BTC", "ETH/USDT", "ETH/BTC", "BTC/USDT")

        assert triangle.asset_a == "USDT"
        assert triangle.asset_b == "ETH"
        assert triangle.asset_c == "BTC"
        assert triangle.pair_ab == "ETH/USDT"
        assert triangle.pair_bc == "ETH/BTC"
        assert triangle.pair_ca == "BTC/USDT"
        assert triangle.path_abc == ["ETH/USDT", "ETH/BTC", "BTC/USDT"]
        assert triangle.path_acb == ["BTC/USDT", "ETH/BTC", "ETH/USDT"]
        assert triangle.label == "USDT-ETH-BTC"

    def test_get_pairs_and_assets(self):
        """Test getting all pairs and assets from triangle."""
        triangle = Triangle("USDT", "ETH", "BTC", "ETH/USDT", "ETH/BTC", "BTC/USDT")

        assert sorted(triangle.get_pairs()) == ["BTC/USDT", "ETH/BTC", "ETH/USDT"]
        assert sorted(triangle.get_assets()) == ["BTC", "ETH", "USDT"]

    def test_from_pairs(self):
        """Start asset is A; the pairs touching it are AB and CA."""
        triangle = default_triangle()

        assert triangle.get_assets() == ["USDT", "BTC", "ETH"]
        assert triangle.pair_ab == "BTC/USDT"
        assert triangle.pair_bc == "ETH/BTC"
        assert triangle.pair_ca == "ETH/USDT"

    def test_from_pairs_rejects_open_loop(self):
        """Pairs that do not close a loop through the start asset are rejected."""
        with pytest.raises(InvalidSymbol):
            Triangle.from_pairs(["BTC/USDT", "ETH/BTC", "ADA/ETH"], "USDT")

        with pytest.raises(InvalidSymbol):
            Triangle.from_pairs(["BTC/USDT", "ETH/USDT"], "USDT")

    def test_paths(self):
        """Both directions start and end at A."""
        triangle = default_triangle()

        assert triangle.get_path("ABC") == ["USDT", "BTC", "ETH", "USDT"]
        assert triangle.get_path("ACB") == ["USDT", "ETH", "BTC", "USDT"]
        with pytest.raises(ValueError):
            triangle.get_path("CBA")

    def test_leg_sides(self):
        """Moving into the base buys it; moving into the quote sells."""
        triangle = default_triangle()

        assert [leg.side for leg in triangle.legs("ABC")] == [BUY, BUY, SELL]
        assert [leg.side for leg in triangle.legs("ACB")] == [BUY, SELL, SELL]

    def test_leg_between_unrelated_assets(self):
        with pytest.raises(InvalidSymbol):
            TriangleLeg.between("BTC/USDT", "ETH", "USDT")


class TestTriangleDiscovery:
    """Test triangle discovery logic."""

    def test_find_triangles(self):
        """Each loop is reported once, whichever direction finds it."""
        triangles = find_triangles(SAMPLE_MARKETS, ["USDT"])

        assert [t.label for t in triangles] == ["USDT-ADA-BTC", "USDT-BTC-ETH"]
        assert triangles[1].get_pairs() == ["BTC/USDT", "ETH/BTC", "ETH/USDT"]

    def test_find_triangles_with_exclusions(self):
        triangles = find_triangles(SAMPLE_MARKETS, ["USDT"], exclude_assets=["ADA"])

        assert len(triangles) == 1
        assert triangles[0].label == "USDT-BTC-ETH"

    def test_find_triangles_native_symbols(self):
        """Exchange-native symbols are normalised; unknown ones are skipped."""
        triangles = find_triangles(["BTCUSDT", "ETHBTC", "ETHUSDT", "GARBAGE"], ["USDT"])

        assert len(triangles) == 1
        assert "ETH/BTC" in triangles[0].get_pairs()

    def test_no_triangles(self):
        assert find_triangles(["BTC/USDT", "ETH/USDT"], ["USDT"]) == []


class TestTriangularYield:
    """Test the spread arithmetic."""

    def test_zero_fee_matches_closed_form(self):
        """Zero-fee net equals ((1/p1) * (1/p2) * p3 - 1) * 100."""
        p1, p2, p3 = 60000.0, 0.05, 3010.0
        quotes = {
            "BTC/USDT": make_quote("BTC/USDT", p1),
            "ETH/BTC": make_quote("ETH/BTC", p2),
            "ETH/USDT": make_quote("ETH/USDT", p3),
        }

        result = calculate_triangle_spread(default_triangle(), quotes, FeeModel(0.0), 0.05)

        expected = ((1 / p1) * (1 / p2) * p3 - 1) * 100
        assert result.net_spread_pct == pytest.approx(expected)
        assert result.gross_spread_pct == pytest.approx(expected)

    def test_fee_lowers_net(self):
        quotes = scenario_triangle_quotes()
        triangle = default_triangle()

        without_fee = calculate_triangle_spread(triangle, quotes, FeeModel(0.0), 0.05)
        with_fee = calculate_triangle_spread(triangle, quotes, FeeModel(0.001), 0.05)

        assert with_fee.net_spread_pct < without_fee.net_spread_pct
        assert with_fee.gross_spread_pct == pytest.approx(without_fee.gross_spread_pct)

    def test_documented_scenario_is_not_an_opportunity(self):
        """Balanced prices with a 0.1% fee per leg lose three fees."""
        result = evaluate_triangle(default_triangle(), scenario_triangle_quotes(), FeeModel(0.001), 0.05)

        assert result.kind == OpportunityKind.TRIANGULAR
        assert result.gross_spread_pct == pytest.approx(0.0, abs=1e-9)
        assert result.net_spread_pct == pytest.approx((0.999 ** 3 - 1) * 100)
        assert result.profitable is False
        assert result.path == ["USDT", "BTC", "ETH", "USDT"]

    def test_buy_legs_use_ask_and_sell_legs_use_bid(self):
        quotes = {
            "BTC/USDT": make_quote("BTC/USDT", 59990.0, 60000.0),
            "ETH/BTC": make_quote("ETH/BTC", 0.0499, 0.05),
            "ETH/USDT": make_quote("ETH/USDT", 3000.0, 3001.0),
        }

        result = calculate_triangle_spread(default_triangle(), quotes, FeeModel(0.0), 0.05, "ABC")

        assert [leg["price"] for leg in result.details["legs"]] == [60000.0, 0.05, 3000.0]
        assert result.details["exchange"] == "binance"

    def test_better_direction_wins(self):
        """ETH cheap against USDT makes the reverse loop profitable."""
        quotes = {
            "BTC/USDT": make_quote("BTC/USDT", 60000.0),
            "ETH/BTC": make_quote("ETH/BTC", 0.05),
            "ETH/USDT": make_quote("ETH/USDT", 2990.0),
        }
        triangle = default_triangle()

        best = evaluate_triangle(triangle, quotes, FeeModel(0.0), 0.05)
        forward_only = evaluate_triangle(triangle, quotes, FeeModel(0.0), 0.05, both_directions=False)

        assert best.details["direction"] == "ACB"
        assert best.path == ["USDT", "ETH", "BTC", "USDT"]
        assert best.net_spread_pct == pytest.approx((3000.0 / 2990.0 - 1) * 100)
        assert best.profitable is True
        assert forward_only.details["direction"] == "ABC"
        assert forward_only.net_spread_pct < 0

    def test_threshold_is_inclusive(self):
        at_threshold = OpportunityResult(OpportunityKind.TRIANGULAR, 0.2, 0.05, 0.05, "USDT-BTC-ETH")
        below = OpportunityResult(OpportunityKind.TRIANGULAR, 0.2, 0.0499, 0.05, "USDT-BTC-ETH")

        assert at_threshold.profitable is True
        assert below.profitable is False

    def test_idempotent(self):
        quotes = scenario_triangle_quotes()
        triangle = default_triangle()

        first = evaluate_triangle(triangle, quotes, FeeModel(0.001), 0.05)
        second = evaluate_triangle(triangle, quotes, FeeModel(0.001), 0.05)

        assert first.net_spread_pct == second.net_spread_pct
        assert first.details == second.details

    def test_missing_quote(self):
        quotes = scenario_triangle_quotes()
        del quotes["ETH/BTC"]

        with pytest.raises(InvalidQuote):
            evaluate_triangle(default_triangle(), quotes, FeeModel(0.001), 0.05)

    def test_invalid_prices(self):
        with pytest.raises(InvalidQuote):
            calculate_triangular_yield([(0.0, BUY)], 0.001)

        with pytest.raises(InvalidQuote):
            calculate_triangular_yield([(float("nan"), SELL)], 0.001)

        with pytest.raises(ValueError):
            calculate_triangular_yield([(1.0, "hold")], 0.001)


class TestQuote:
    """Test quote validation."""

    def test_rejects_bad_prices(self):
        with pytest.raises(InvalidQuote):
            Quote("binance", "BTC/USDT", bid=0, ask=60000)

        with pytest.raises(InvalidQuote):
            Quote("binance", "BTC/USDT", bid=-1, ask=60000)

        with pytest.raises(InvalidQuote):
            Quote("binance", "BTC/USDT", bid=None, ask=60000)

    def test_rejects_crossed_book(self):
        with pytest.raises(InvalidQuote):
            Quote("binance", "BTC/USDT", bid=60001, ask=60000)

    def test_properties(self):
        quote = Quote("binance", "BTC/USDT", bid="60000", ask=60006)

        assert quote.bid == 60000.0
        assert quote.mid_price == 60003.0
        assert quote.spread_bps == pytest.approx(1.0)
        assert quote.timestamp > 0

    def test_fee_model_bounds(self):
        assert FeeModel.from_bps(10).per_trade_fee_rate == pytest.approx(0.001)

        with pytest.raises(ValueError):
            FeeModel(1.0)

        with pytest.raises(ValueError):
            FeeModel(0.001, flat_transfer_fee_usd=-5)
