"""Month grouping and labels for the gallery view."""

import calendar
from typing import Iterable

from gallery.client.state import ImageData


def group_by_month(images: Iterable[ImageData]) -> dict[str, list[ImageData]]:
    """
    Partition images by their stored monthYear.

    Order inside a group is the input order, so a list already sorted
    newest-first stays newest-first per month.
    """
    groups: dict[str, list[ImageData]] = {}
    for image in images:
        groups.setdefault(image.month_year, []).append(image)
    return groups


def sorted_months(groups: dict[str, list[ImageData]]) -> list[str]:
    # YYYY-MM keys sort chronologically as strings
    return sorted(groups, reverse=True)


def month_name(month_year: str) -> str:
    """'2024-03' -> 'March 2024'."""
    year, month = month_year.split("-")
    return f"{calendar.month_name[int(month)]} {int(year)}"


def month_short(month_year: str) -> str:
    """'2024-03' -> '03/24'."""
    year, month = month_year.split("-")
    return f"{month}/{year[2:]}"


def image_count_label(count: int) -> str:
    return f"{count} {'image' if count == 1 else 'images'}"
