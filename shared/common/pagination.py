# shared/common/pagination.py
"""
API list pagination
"""

from typing import Any

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardPagination(PageNumberPagination):
    """
    Page number pagination wrapped in the success envelope.

    The default page size is REST_FRAMEWORK['PAGE_SIZE']; clients can ask
    for up to max_page_size rows with ?page_size=.
    """

    page_size_query_param = 'page_size'
    max_page_size = 100

    def get_paginated_response(self, data: Any) -> Response:
        paginator = self.page.paginator
        return Response({
            'success': True,
            'count': paginator.count,
            'total_pages': paginator.num_pages,
            'current_page': self.page.number,
            'page_size': self.get_page_size(self.request),
            'next': self.get_next_link(),
            'previous': self.get_previous_link(),
            'results': data,
        })
