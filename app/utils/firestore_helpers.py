"""
Firestore query helpers.

Queries use keyword filters (FieldFilter) so the client does not emit the
positional-arguments deprecation warning on every request.
"""

from google.cloud.firestore_v1.base_query import FieldFilter


def where_filter(query, field_path: str, op_string: str, value):
    """
    Add one field filter to a collection or query.

    Usage:
        query = where_filter(collection, "user_location", "==", "Marikina")
        query = where_filter(query, "status", "==", "Pending Confirmation")
    """
    return query.where(filter=FieldFilter(field_path, op_string, value))
