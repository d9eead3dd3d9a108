"""
Ledger-based recommendation engine.

Suggests products that were frequently bought together with the current cart,
using co-occurrence counts over past sale transactions. Used when no remote
suggestion service is configured.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable

from counterpos.schemas.product import Product
from counterpos.schemas.transaction import Transaction, TransactionKind

logger = logging.getLogger(__name__)


class RecommendationResult:
    def __init__(self, product_ids: list[str], reason: str):
        self.product_ids = product_ids
        self.reason = reason


class RecommendationEngine:
    """Co-occurrence matrix over sale baskets. No heavy ML."""

    def __init__(self):
        # {product_id: {other_product_id: count}}
        self._co_occurrence: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._trained_on = 0

    @property
    def is_trained(self) -> bool:
        return self._trained_on > 0

    def train_from_transactions(self, transactions: Iterable[Transaction]) -> None:
        """Rebuild the matrix from sale baskets; returns do not count as baskets."""
        self._co_occurrence.clear()
        baskets = 0
        for tx in transactions:
            if tx.kind != TransactionKind.SALE:
                continue
            baskets += 1
            unique_items = sorted({item.id for item in tx.items})
            for i, item_a in enumerate(unique_items):
                for item_b in unique_items[i + 1:]:
                    self._co_occurrence[item_a][item_b] += 1
                    self._co_occurrence[item_b][item_a] += 1

        self._trained_on = baskets
        total_pairs = sum(len(v) for v in self._co_occurrence.values())
        logger.debug("Recommendation model trained: %d baskets, %d pairs", baskets, total_pairs)

    def get_frequently_bought_together(
        self,
        cart_product_ids: list[str],
        limit: int = 3,
    ) -> RecommendationResult:
        if not self.is_trained:
            return RecommendationResult(product_ids=[], reason="model_not_trained")

        exclude = set(cart_product_ids)
        score: dict[str, int] = defaultdict(int)
        for product_id in cart_product_ids:
            for related_id, count in self._co_occurrence.get(product_id, {}).items():
                if related_id not in exclude:
                    score[related_id] += count

        # Highest score first, barcode as a stable tie-breaker
        top_products = sorted(score.items(), key=lambda x: (-x[1], x[0]))[:limit]
        return RecommendationResult(
            product_ids=[pid for pid, _ in top_products],
            reason="frequently_bought_together",
        )


def describe_recommendation(result: RecommendationResult, catalog: dict[str, Product]) -> str | None:
    names = [catalog[pid].name for pid in result.product_ids if pid in catalog and catalog[pid].stock > 0]
    if not names:
        return None
    return "Customers who bought these items also bought: " + ", ".join(names) + "."
