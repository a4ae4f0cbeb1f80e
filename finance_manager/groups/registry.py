"""
Category-Group Registry

The fixed set of groups every transaction belongs to. The registry is
static configuration: it is built once and read by the aggregator, the
query engine and the validator.

DESIGN DECISION: Registry order is significant. It is the order in
which groups are scanned, which in turn decides how entries sharing a
date are ordered in query results.
"""

from functools import lru_cache
from typing import Iterable, Iterator, Optional

from finance_manager.models.transaction import CategoryGroup, SemanticType


DEFAULT_GROUPS: tuple[CategoryGroup, ...] = (
    CategoryGroup(
        key="income",
        label="Receitas",
        semantic_type=SemanticType.INCOME,
        default_categories=("Salário", "Freelance", "Investimentos", "Vendas", "Outros"),
        icon="📈",
        placeholder="Ex.: Salário, Freelance...",
    ),
    CategoryGroup(
        key="fixed-expenses",
        label="Contas Fixas",
        semantic_type=SemanticType.EXPENSE,
        default_categories=("Moradia", "Transporte", "Saúde", "Educação", "Serviços", "Outros"),
        icon="🏠",
        placeholder="Ex.: Aluguel, Internet...",
    ),
    CategoryGroup(
        key="variable-expenses",
        label="Contas Variáveis",
        semantic_type=SemanticType.EXPENSE,
        default_categories=("Alimentação", "Lazer", "Compras", "Transporte", "Saúde", "Outros"),
        icon="🛒",
        placeholder="Ex.: Supermercado...",
    ),
    CategoryGroup(
        key="credit-cards",
        label="Cartões de Crédito",
        semantic_type=SemanticType.EXPENSE,
        default_categories=("Compras", "Assinaturas", "Alimentação", "Viagens", "Outros"),
        icon="💳",
        placeholder="Ex.: Fatura Nubank...",
    ),
)


class UnknownGroupError(KeyError):
    """A group key that the registry does not know about."""

    def __init__(self, group_key: str):
        super().__init__(group_key)
        self.group_key = group_key

    def __str__(self) -> str:
        return f"Unknown category-group: {self.group_key!r}"


class CategoryGroupRegistry:
    """Ordered, read-only collection of category-groups."""

    def __init__(self, groups: Optional[Iterable[CategoryGroup]] = None):
        groups = tuple(DEFAULT_GROUPS if groups is None else groups)
        self._groups: dict[str, CategoryGroup] = {}
        for group in groups:
            if group.key in self._groups:
                raise ValueError(f"Duplicate category-group key: {group.key!r}")
            self._groups[group.key] = group

    def __iter__(self) -> Iterator[CategoryGroup]:
        return iter(self._groups.values())

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, group_key: object) -> bool:
        return group_key in self._groups

    def get(self, group_key: str) -> CategoryGroup:
        """Return the group for a key or raise UnknownGroupError."""
        try:
            return self._groups[group_key]
        except KeyError:
            raise UnknownGroupError(group_key) from None

    def active_groups(self) -> list[CategoryGroup]:
        """Groups taking part in aggregation, in registry order."""
        return [group for group in self._groups.values() if not group.excluded]

    def select(self, group_keys: Iterable[str]) -> list[CategoryGroup]:
        """
        Resolve a set of keys to groups, in registry order.

        An empty selection means every active group. Explicitly named
        groups are honoured even when excluded.
        """
        wanted = set(group_keys)
        if not wanted:
            return self.active_groups()
        for key in wanted:
            self.get(key)
        return [group for group in self._groups.values() if group.key in wanted]

    def semantic_type(self, group_key: str) -> SemanticType:
        return self.get(group_key).semantic_type


@lru_cache()
def get_default_registry() -> CategoryGroupRegistry:
    """Shared registry built from DEFAULT_GROUPS."""
    return CategoryGroupRegistry()
