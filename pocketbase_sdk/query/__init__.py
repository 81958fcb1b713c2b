"""
Query builders for PocketBase list and view requests.

Example usage:
    from pocketbase_sdk.query import FilterQueryBuilder, ExpandQuery

    filters = FilterQueryBuilder().equal("status", "active").greater_than("age", "18")
    expand = ExpandQuery("author").expand_nested("comments.user")

    params = {"filter": filters.render(), "expand": expand.render()}
"""

from .filters import (
    FilterOperator,
    FilterExpression,
    FilterQueryBuilder,
    FilterBuilder,
    needs_quotes
)

from .expand import ExpandQuery, ExpandBuilder

__all__ = [
    # Filters
    'FilterOperator',
    'FilterExpression',
    'FilterQueryBuilder',
    'FilterBuilder',
    'needs_quotes',

    # Expand
    'ExpandQuery',
    'ExpandBuilder'
]
