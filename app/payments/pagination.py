"""
Pagination classes for the payments API.
"""

from rest_framework.pagination import CursorPagination


class PayoutCursorPagination(CursorPagination):
    """
    Cursor pagination for payout lists, newest first.

    Default: 20 payouts per page
    Maximum: 100 payouts per page
    """

    page_size = 20
    max_page_size = 100
    page_size_query_param = "page_size"
    ordering = ("-created_at", "-id")
    cursor_query_param = "cursor"
