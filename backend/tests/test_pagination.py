import pytest

from app.errors import ValidationError
from app.utils.pagination import (
    MAX_LIMIT,
    SEARCH_DEFAULT_LIMIT,
    SUB_RESOURCE_DEFAULT_LIMIT,
    PageRequest,
    Pagination,
)


def test_defaults_per_call_site():
    """Search pages default to 12 rows, sub-resource listings to 10."""
    assert PageRequest.from_raw() == PageRequest(page=1, limit=SEARCH_DEFAULT_LIMIT)
    assert PageRequest.from_raw(default_limit=SUB_RESOURCE_DEFAULT_LIMIT).limit == 10


def test_first_page_of_25_rows():
    page = PageRequest.from_raw("1", "12")
    pagination = Pagination.build(page, 25)
    assert page.offset == 0
    assert pagination.total_pages == 3
    assert pagination.has_more is True


def test_last_page_of_25_rows():
    page = PageRequest.from_raw(3, 12)
    pagination = Pagination.build(page, 25)
    assert page.offset == 24
    assert pagination.total_pages == 3
    assert pagination.has_more is False


def test_zero_rows_means_zero_pages():
    pagination = Pagination.build(PageRequest.from_raw(), 0)
    assert pagination.total_pages == 0
    assert pagination.has_more is False


@pytest.mark.parametrize(
    "page,limit,expected",
    [
        ("0", "12", (1, 12)),
        ("-4", "12", (1, 12)),
        ("2", "500", (2, MAX_LIMIT)),
        ("2", "0", (2, 1)),
        (" 3 ", None, (3, SEARCH_DEFAULT_LIMIT)),
        ("", "", (1, SEARCH_DEFAULT_LIMIT)),
    ],
)
def test_out_of_range_integers_are_clamped(page, limit, expected):
    request = PageRequest.from_raw(page, limit)
    assert (request.page, request.limit) == expected


@pytest.mark.parametrize("page,limit", [("abc", None), (None, "12abc"), ("1.5", None), (True, None)])
def test_non_integers_are_rejected(page, limit):
    with pytest.raises(ValidationError) as exc_info:
        PageRequest.from_raw(page, limit)
    assert exc_info.value.details[0]["field"] in ("page", "limit")


def test_to_dict_uses_wire_keys():
    data = Pagination.build(PageRequest(page=1, limit=10), 11).to_dict()
    assert data == {"page": 1, "limit": 10, "total": 11, "totalPages": 2, "hasMore": True}
