"""Pagination used by every list endpoint."""

from __future__ import annotations

from rest_framework.pagination import PageNumberPagination  # type: ignore


class StandardPagination(PageNumberPagination):
    """``?page=`` and ``?limit=``, 20 items per page by default."""

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100
