"""
Ordering Engine

Produces the history view orderings. Sorting never filters and never
mutates its input. Every mode is a stable sort: records comparing equal
keep their insertion order, in descending modes too.
"""

from typing import Iterable, Union

from fuel_ledger.models.record import FuelRecord, SortMode


DEFAULT_SORT_MODE = SortMode.DATE_DESC


def order_records(
    records: Iterable[FuelRecord],
    mode: Union[SortMode, str] = DEFAULT_SORT_MODE,
) -> list[FuelRecord]:
    """
    Return a new list of records in the requested order.

    Raises:
        ValueError: If `mode` is not a known sort mode
    """
    mode = SortMode(mode)

    if mode == SortMode.DATE_ASC:
        return sorted(records, key=lambda record: record.sort_key)
    elif mode == SortMode.DATE_DESC:
        return sorted(records, key=lambda record: record.sort_key, reverse=True)
    elif mode == SortMode.COST_ASC:
        return sorted(records, key=lambda record: record.total_cost)
    else:
        return sorted(records, key=lambda record: record.total_cost, reverse=True)
