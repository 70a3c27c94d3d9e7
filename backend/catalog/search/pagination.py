"""Normalize ``page`` / ``skip`` + ``take`` into a single skip/take pair."""

from typing import NamedTuple

from catalog.errors import InvalidFilter


class Pagination(NamedTuple):
    skip: int
    take: int


def build_pagination(
    take: int | None = None,
    skip: int | None = None,
    page: int | None = None,
    page_size: int = 24,
) -> Pagination:
    """Resolve pagination inputs.

    The page size is ``take`` when given, otherwise ``page_size``. An explicit
    ``skip`` wins over ``page``; with neither, the first page is returned.
    """
    for name, value in (("take", take), ("skip", skip), ("page", page)):
        if value is not None and value < 0:
            raise InvalidFilter(f"'{name}' must not be negative (got {value})")
    if take is not None and take < 1:
        raise InvalidFilter("'take' must be at least 1")

    size = take if take is not None else page_size
    if skip is None:
        skip = (page or 0) * size
    return Pagination(skip=skip, take=size)
