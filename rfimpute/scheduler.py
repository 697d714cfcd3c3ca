from __future__ import annotations

from typing import Dict, List

from .table import TypedTable


def schedule_variables(table: TypedTable, decreasing: bool = False) -> List[str]:
    """Order the columns that have missing cells by their missing count.

    Ascending by default (fewest missing first). Ties keep the original column
    order, also when ``decreasing=True``. The order depends only on the mask,
    so it is computed once per run.
    """
    counts: Dict[str, int] = table.missing_counts()
    with_missing = [c for c in table.columns if counts[c] > 0]
    if decreasing:
        return sorted(with_missing, key=lambda c: -counts[c])
    return sorted(with_missing, key=lambda c: counts[c])
