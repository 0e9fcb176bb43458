"""Tests for gb9k.core.models."""

from decimal import Decimal

import pytest

from gb9k.core.models import Message, ModelQuote, StreamState, UsageReport


class TestMessage:
    def test_to_api(self):
        assert Message(role="user", content="hi").to_api() == {"role": "user", "content": "hi"}

    def test_to_api_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            Message(role="human", content="hi").to_api()


class TestModelQuote:
    def test_from_api_parses_string_prices(self):
        quote = ModelQuote.from_api({
            "id": "anthropic/claude-3.5-sonnet",
            "name": "Claude 3.5 Sonnet",
            "pricing": {"prompt": "0.000003", "completion": "0.000015"},
            "context_length": 200000,
        })
        assert quote.prompt_price == Decimal("0.000003")
        assert quote.completion_price == Decimal("0.000015")
        assert quote.context_length == 200000
        assert quote.has_pricing is True

    def test_one_zero_price_is_not_pricing(self):
        quote = ModelQuote(id="x/y", prompt_price=Decimal("0.000001"), completion_price=Decimal("0"))
        assert quote.has_pricing is False

    def test_missing_pricing(self):
        quote = ModelQuote.from_api({"id": "x/y"})
        assert quote.prompt_price is None
        assert quote.completion_price is None
        assert quote.has_pricing is False

    def test_zero_pricing_is_not_pricing(self):
        quote = ModelQuote.from_api({"id": "x/y:free", "pricing": {"prompt": "0", "completion": "0"}})
        assert quote.has_pricing is False

    def test_garbage_price(self):
        quote = ModelQuote.from_api({"id": "x/y", "pricing": {"prompt": "n/a", "completion": None}})
        assert quote.prompt_price is None


class TestStreamState:
    def test_text_joins_parts(self):
        state = StreamState(parts=["Hel", "lo"])
        assert state.text == "Hello"

    def test_has_usage_needs_both_counters(self):
        assert StreamState(prompt_tokens=1).has_usage is False
        assert StreamState(prompt_tokens=1, completion_tokens=0).has_usage is True


class TestUsageReport:
    def test_totals(self):
        report = UsageReport(prompt_tokens=10, completion_tokens=5)
        assert report.total_tokens == 15
        assert report.cost_available is False
