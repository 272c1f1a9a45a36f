"""Application utilities."""

from typing import Any


def find_duplicates(items: list[Any], attr: str | None = None) -> list[Any]:
    """Find duplicate items in a list.

    Optionally filter items by attribute.

    Args:
        items (list of Any): List of items to inspects
        attr (str | None): Optional to key to use as reference for duplicate values in
            the list.

    Returns:
        list (Any): the original list.

    Raises:
        ValueError if at least one value appears twice.

    """
    if attr:
        values = [getattr(j, attr) for j in items]
    else:
        values = items
    seen = set()
    dupes = [x for x in values if x in seen or seen.add(x)]
    if attr:
        msg = f"There are multiple items with identical {attr}: {','.join(dupes)}"
    else:
        msg = f"There are multiple identical items: {','.join(dupes)}"
    if not len(dupes) == 0:
        raise ValueError(msg)
    return items


def format_capacity(capacity_byte: int) -> str:
    """Return a human readable representation of a capacity, used in log messages.

    Args:
        capacity_byte (int): capacity in bytes.

    Returns:
        str: capacity using binary prefixes, i.e. "100.0GiB".

    """
    value = float(capacity_byte)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if value < 1024 or unit == "TiB":
            break
        value /= 1024
    if unit == "B":
        return f"{capacity_byte}B"
    return f"{value:.1f}{unit}"
