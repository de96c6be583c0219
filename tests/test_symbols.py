"""Test symbol format translation."""

import pytest

from arbwatch.core.errors import InvalidSymbol
from arbwatch.core.symbols import SymbolMapper, split_symbol, to_exchange_format, to_unified


class TestSplitSymbol:
    """Test splitting symbols into base and quote."""

    @pytest.mark.parametrize("symbol", ["BTC/USDT", "BTCUSDT", "btc-usdt", "BTC_USDT", "btcusdt"])
    def test_formats(self, symbol):
        assert split_symbol(symbol) == ("BTC", "USDT")

    def test_longest_quote_wins(self):
        assert split_symbol("BTCFDUSD") == ("BTC", "FDUSD")
        assert split_symbol("BTCUSD") == ("BTC", "USD")
        assert split_symbol("ETHBTC") == ("ETH", "BTC")

    def test_settle_suffix(self):
        assert split_symbol("BTC/USDT:USDT") == ("BTC", "USDT")

    @pytest.mark.parametrize("symbol", ["", "USDT", "FOOBAR", "/USDT", "BTC/", None])
    def test_invalid(self, symbol):
        with pytest.raises(InvalidSymbol):
            split_symbol(symbol)


class TestConversion:
    """Test unified and exchange-native forms."""

    def test_to_unified(self):
        assert to_unified("ETHBTC") == "ETH/BTC"
        assert to_unified("eth/btc") == "ETH/BTC"

    def test_to_exchange_format(self):
        assert to_exchange_format("BTC/USDT") == "BTCUSDT"
        assert to_exchange_format("BTC/USDT", separator="-") == "BTC-USDT"

    def test_mapper_with_custom_quotes(self):
        """A configured quote table replaces the built-in one."""
        mapper = SymbolMapper(["xyz", "USDT"])

        assert mapper.split("ABCXYZ") == ("ABC", "XYZ")
        assert mapper.to_unified("ABCXYZ") == "ABC/XYZ"
        assert mapper.to_exchange_format("ABC/XYZ", "_") == "ABC_XYZ"

        with pytest.raises(InvalidSymbol):
            mapper.split("ETHBTC")
