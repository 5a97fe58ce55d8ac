"""Pagination for API v1 list endpoints."""

from rest_framework.pagination import PageNumberPagination


class FinancePagination(PageNumberPagination):
    """25 rows per page; clients may ask for up to 200 with ``?page_size=``."""

    page_size = 25
    page_size_query_param = 'page_size'
    max_page_size = 200
