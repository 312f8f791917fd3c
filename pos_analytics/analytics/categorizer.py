"""
Product Categorizer

Maps free-text product names to a fixed set of categories using an ordered
list of case-insensitive substring rules. The first matching rule wins, so
rule order is part of the contract:

    1. espresso                         -> ESPRESSO
    2. latte, cappuccino                -> LATTE
    3. americano                        -> AMERICANO
    4. hot chocolate, chocolate, cocoa  -> HOT_CHOCOLATE
    5. tea                              -> TEA
    6. whiskey, irish                   -> SPECIALTY
    *  anything else                    -> OTHER

Consequences: "Chai Latte" and "Irish Latte" are LATTE, "Espresso Con
Panna" is ESPRESSO, "Mocha" is OTHER.
"""

from typing import Dict, Iterable, Sequence, Tuple

from pos_analytics.models.transactions import Category, Transaction


CATEGORY_RULES: Tuple[Tuple[Tuple[str, ...], Category], ...] = (
    (("espresso",), Category.ESPRESSO),
    (("latte", "cappuccino"), Category.LATTE),
    (("americano",), Category.AMERICANO),
    (("hot chocolate", "chocolate", "cocoa"), Category.HOT_CHOCOLATE),
    (("tea",), Category.TEA),
    (("whiskey", "irish"), Category.SPECIALTY),
)


class Categorizer:
    """
    Ordered keyword categorizer with a per-instance memo table.

    Example:
        categorizer = Categorizer()
        categorizer.categorize("Cappuccino")   # Category.LATTE
        tagged = categorizer.decorate(transactions)
    """

    def __init__(self, rules: Sequence[Tuple[Tuple[str, ...], Category]] = CATEGORY_RULES):
        self.rules = tuple(
            (tuple(keyword.lower() for keyword in keywords), category)
            for keywords, category in rules
        )
        self._memo: Dict[str, Category] = {}

    def categorize(self, product_name: str) -> Category:
        """Return the category of ``product_name``; never raises."""
        cached = self._memo.get(product_name)
        if cached is not None:
            return cached

        name = (product_name or "").lower()
        category = Category.OTHER
        for keywords, rule_category in self.rules:
            if any(keyword in name for keyword in keywords):
                category = rule_category
                break

        self._memo[product_name] = category
        return category

    def decorate(self, transactions: Iterable[Transaction]) -> Tuple[Transaction, ...]:
        """Return category-tagged copies of ``transactions``."""
        return tuple(
            t.with_category(self.categorize(t.product_name)) for t in transactions
        )
