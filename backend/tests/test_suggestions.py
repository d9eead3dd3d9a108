"""Suggestion providers and the per-session debouncer."""

import asyncio
import json
from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest

from counterpos.ai.recommendations import RecommendationEngine
from counterpos.ai.suggestions import (
    LedgerSuggestionProvider,
    RemoteSuggestionProvider,
    SuggestionDebouncer,
    SuggestionProvider,
    build_prompt,
    build_provider,
)
from counterpos.schemas.transaction import CartLine

from conftest import CASHIER_ID, CLERK_ID, make_product

DELAY = 0.01


def _lines(*barcodes):
    return [CartLine(**make_product(b, f"Item {b}", "10.00").model_dump(), quantity=1) for b in barcodes]


class RecordingProvider(SuggestionProvider):
    def __init__(self, gate: asyncio.Event | None = None):
        self.calls: list[list[str]] = []
        self._gate = gate

    async def suggest(self, lines):
        self.calls.append([line.id for line in lines])
        if self._gate is not None:
            await self._gate.wait()
        return "with " + ",".join(line.id for line in lines)


# ── Providers ──────────────────────────────────────


def test_build_prompt_lists_cart():
    prompt = build_prompt(_lines("A1", "B2"))
    assert "1 x Item A1" in prompt
    assert "1 x Item B2" in prompt


@pytest.mark.asyncio
async def test_remote_provider_returns_suggestion():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"suggestion": "  Try fresh milk.  "})

    provider = RemoteSuggestionProvider(
        "https://suggest.example.test/v1", api_key="k-123", transport=httpx.MockTransport(handler),
    )

    assert await provider.suggest(_lines("A1")) == "Try fresh milk."
    assert seen["auth"] == "Bearer k-123"
    assert seen["body"]["items"] == [{"barcode": "A1", "name": "Item A1", "quantity": 1}]
    assert "Item A1" in seen["body"]["prompt"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="busy"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"other": "field"}),
        httpx.Response(200, json={"suggestion": "   "}),
    ],
)
async def test_remote_provider_failures_yield_none(response):
    provider = RemoteSuggestionProvider(
        "https://suggest.example.test/v1", transport=httpx.MockTransport(lambda request: response),
    )
    assert await provider.suggest(_lines("A1")) is None


@pytest.mark.asyncio
async def test_remote_provider_unreachable_yields_none():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = RemoteSuggestionProvider("https://suggest.example.test/v1", transport=httpx.MockTransport(handler))
    assert await provider.suggest(_lines("A1")) is None


@pytest.mark.asyncio
async def test_ledger_provider_uses_past_baskets(store):
    store.add_to_cart(CASHIER_ID, "A100")
    store.add_to_cart(CASHIER_ID, "B050")
    await store.checkout(CASHIER_ID, Decimal("500"))

    provider = LedgerSuggestionProvider(store)
    text = await provider.suggest(_lines("A100"))

    assert text == "Customers who bought these items also bought: Basmati Rice."


@pytest.mark.asyncio
async def test_ledger_provider_without_history(store):
    assert await LedgerSuggestionProvider(store).suggest(_lines("A100")) is None


def test_untrained_engine_recommends_nothing():
    engine = RecommendationEngine()
    assert not engine.is_trained
    assert engine.get_frequently_bought_together(["A100"]).reason == "model_not_trained"


def test_build_provider_selects_remote_when_configured(store):
    config = MagicMock(SUGGESTION_URL="https://suggest.example.test", SUGGESTION_API_KEY="", SUGGESTION_TIMEOUT_SECONDS=2.0)
    assert isinstance(build_provider(config, store), RemoteSuggestionProvider)

    config.SUGGESTION_URL = ""
    assert isinstance(build_provider(config, store), LedgerSuggestionProvider)


# ── Debouncer ──────────────────────────────────────


@pytest.mark.asyncio
async def test_burst_of_changes_calls_provider_once():
    provider = RecordingProvider()
    debouncer = SuggestionDebouncer(provider, DELAY)

    debouncer.trigger(1, _lines("A"))
    debouncer.trigger(1, _lines("A", "B"))
    debouncer.trigger(1, _lines("A", "B", "C"))
    assert debouncer.pending(1)

    await debouncer.settle(1)

    assert provider.calls == [["A", "B", "C"]]
    assert debouncer.current(1) == "with A,B,C"
    assert not debouncer.pending(1)


@pytest.mark.asyncio
async def test_in_flight_result_is_discarded_after_newer_change():
    gate = asyncio.Event()
    provider = RecordingProvider(gate)
    debouncer = SuggestionDebouncer(provider, DELAY)

    debouncer.trigger(1, _lines("A"))
    await asyncio.sleep(DELAY * 5)
    assert provider.calls == [["A"]]

    debouncer.trigger(1, _lines("B"))
    gate.set()
    await debouncer.settle(1)

    assert provider.calls == [["A"], ["B"]]
    assert debouncer.current(1) == "with B"


@pytest.mark.asyncio
async def test_empty_cart_clears_suggestion_immediately():
    debouncer = SuggestionDebouncer(RecordingProvider(), DELAY)
    debouncer.trigger(1, _lines("A"))
    await debouncer.settle(1)
    assert debouncer.current(1) == "with A"

    debouncer.trigger(1, [])

    assert debouncer.current(1) is None
    assert not debouncer.pending(1)


@pytest.mark.asyncio
async def test_sessions_are_independent():
    debouncer = SuggestionDebouncer(RecordingProvider(), DELAY)
    debouncer.trigger(1, _lines("A"))
    debouncer.trigger(2, _lines("B"))
    await debouncer.settle(1)
    await debouncer.settle(2)

    assert debouncer.current(1) == "with A"
    assert debouncer.current(2) == "with B"


@pytest.mark.asyncio
async def test_aclose_cancels_pending_work():
    provider = RecordingProvider()
    debouncer = SuggestionDebouncer(provider, 10)
    debouncer.trigger(1, _lines("A"))

    await debouncer.aclose()

    assert not debouncer.pending(1)
    assert provider.calls == []
    assert debouncer.current(1) is None


@pytest.mark.asyncio
async def test_store_cart_changes_drive_debouncer(store):
    debouncer = SuggestionDebouncer(RecordingProvider(), DELAY)
    store.cart_listener = debouncer.trigger

    store.add_to_cart(CLERK_ID, "A100")
    await debouncer.settle(CLERK_ID)
    assert debouncer.current(CLERK_ID) == "with A100"

    await store.checkout(CLERK_ID, Decimal("200"))
    assert debouncer.current(CLERK_ID) is None
    assert not debouncer.pending(CLERK_ID)
