import pytest

from utils.pagination import PageParams, build_pagination_response, get_pagination_params


class TestPaginationParams:
    def test_defaults(self):
        params = get_pagination_params()
        assert params == PageParams(page=1, page_size=32)
        assert params.offset == 0

    def test_limit_takes_precedence(self):
        assert get_pagination_params(page_size="10", limit="5").page_size == 5

    def test_page_size_is_capped(self):
        assert get_pagination_params(page_size=500).page_size == 100

    @pytest.mark.parametrize("raw", ["abc", "-3", "0", None, "inf"])
    def test_invalid_values_fall_back(self, raw):
        params = get_pagination_params(page=raw, page_size=raw)
        assert params.page == 1
        assert params.page_size == 32

    def test_fractional_values_are_truncated(self):
        params = get_pagination_params(page="2.7", page_size="10.9")
        assert params == PageParams(page=2, page_size=10)
        assert params.offset == 10

    def test_custom_bounds(self):
        assert get_pagination_params(default_page_size=12).page_size == 12
        assert get_pagination_params(page_size=80, max_page_size=50).page_size == 50


class TestPaginationResponse:
    def test_has_more(self):
        data = build_pagination_response(["a", "b"], PageParams(page=1, page_size=2), total=5)
        assert data == {"items": ["a", "b"], "page": 1, "page_size": 2, "total": 5, "total_pages": 3, "has_more": True}

    def test_last_page(self):
        data = build_pagination_response(["e"], PageParams(page=3, page_size=2), total=5)
        assert data["has_more"] is False

    def test_empty(self):
        data = build_pagination_response([], PageParams(page=1, page_size=32), total=0)
        assert data["total_pages"] == 0
        assert data["has_more"] is False
