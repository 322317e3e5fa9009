"""
Pagination utilities for the project.

Admin registrant lists are small enough to page generously; clients may
ask for larger pages up to a fixed ceiling.
"""
from rest_framework.pagination import PageNumberPagination


class DefaultPagination(PageNumberPagination):
    """Page number paginator with a client-adjustable page size."""
    page_size = 50
    page_size_query_param = "page_size"
    max_page_size = 500
