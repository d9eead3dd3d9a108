"""Related-product suggestions for the active cart.

The provider is called at most once per quiet period: every cart change
restarts a debounce timer, and a result is only kept if no newer cart change
happened while it was being fetched (last trigger wins, not last response).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from counterpos.ai.recommendations import RecommendationEngine, describe_recommendation
from counterpos.core.config import Settings
from counterpos.schemas.transaction import CartLine

if TYPE_CHECKING:
    from counterpos.services.store import PosStore

logger = logging.getLogger(__name__)


def build_prompt(lines: list[CartLine]) -> str:
    items = ", ".join(f"{line.quantity} x {line.name}" for line in lines)
    return (
        f"A customer's shopping cart contains: {items}. "
        "Suggest one complementary product they might also want, in one short sentence."
    )


class SuggestionProvider:
    async def suggest(self, lines: list[CartLine]) -> str | None:
        raise NotImplementedError


class RemoteSuggestionProvider(SuggestionProvider):
    """Posts the cart to an external text service. Any failure means no suggestion."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def suggest(self, lines: list[CartLine]) -> str | None:
        body = {
            "prompt": build_prompt(lines),
            "items": [{"barcode": l.id, "name": l.name, "quantity": l.quantity} for l in lines],
        }
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, json=body, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("Suggestion service error: %s", exc)
            return None
        except httpx.RequestError as exc:
            logger.warning("Suggestion service unreachable: %s", exc)
            return None
        except ValueError:
            logger.warning("Suggestion service returned a non-JSON body")
            return None

        text = data.get("suggestion") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            return None
        return text.strip()


class LedgerSuggestionProvider(SuggestionProvider):
    """Offline fallback: frequently-bought-together over the store's own sales."""

    def __init__(self, store: PosStore, engine: RecommendationEngine | None = None):
        self._store = store
        self._engine = engine or RecommendationEngine()

    async def suggest(self, lines: list[CartLine]) -> str | None:
        self._engine.train_from_transactions(self._store.transactions)
        result = self._engine.get_frequently_bought_together([line.id for line in lines])
        return describe_recommendation(result, self._store.products)


def build_provider(config: Settings, store: PosStore) -> SuggestionProvider:
    if config.SUGGESTION_URL:
        return RemoteSuggestionProvider(
            config.SUGGESTION_URL,
            api_key=config.SUGGESTION_API_KEY,
            timeout=config.SUGGESTION_TIMEOUT_SECONDS,
        )
    return LedgerSuggestionProvider(store)


class SuggestionDebouncer:
    """One cancellable suggestion task per session key.

    `trigger` must be called from inside the running event loop.
    """

    def __init__(self, provider: SuggestionProvider, delay: float):
        self._provider = provider
        self._delay = delay
        self._generations: dict[int, int] = {}
        self._tasks: dict[int, asyncio.Task] = {}
        self._suggestions: dict[int, str | None] = {}

    def current(self, key: int) -> str | None:
        return self._suggestions.get(key)

    def pending(self, key: int) -> bool:
        return key in self._tasks

    def trigger(self, key: int, lines: list[CartLine]) -> None:
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        previous = self._tasks.pop(key, None)
        if previous is not None:
            previous.cancel()

        if not lines:
            self._suggestions.pop(key, None)
            return

        snapshot = [line.model_copy() for line in lines]
        task = asyncio.get_running_loop().create_task(self._run(key, generation, snapshot))
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._forget(key, t))

    async def settle(self, key: int) -> None:
        """Wait for the pending task of `key`, if any, to finish."""
        task = self._tasks.get(key)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def aclose(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _run(self, key: int, generation: int, lines: list[CartLine]) -> None:
        await asyncio.sleep(self._delay)
        suggestion = await self._provider.suggest(lines)
        if self._generations.get(key) != generation:
            logger.debug("Discarding stale suggestion for session %s", key)
            return
        self._suggestions[key] = suggestion

    def _forget(self, key: int, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
