from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from .response import standardized_response


class StandardResultsPagination(PageNumberPagination):
    """
    Page-number pagination driven by ``?page=`` and ``?limit=``.

    A ``page`` that is not a positive integer falls back to 1, and a page past
    the end yields an empty ``results`` list rather than a 404.

    The page payload is wrapped in the standard envelope:
    ``{"success": true, "data": {"results": [...], "page", "total_pages", "total_items"}}``
    """
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_page_number(self, request, paginator):
        try:
            page_number = int(request.query_params.get(self.page_query_param, 1))
        except (TypeError, ValueError):
            return 1
        return page_number if page_number > 0 else 1

    def paginate_queryset(self, queryset, request, view=None):
        page_size = self.get_page_size(request)
        if not page_size:
            return None

        self.request = request
        paginator = self.django_paginator_class(queryset, page_size)
        self.page_number = self.get_page_number(request, paginator)
        self.total_pages = paginator.num_pages
        self.total_items = paginator.count

        if self.page_number > paginator.num_pages:
            self.page = None
            return []

        self.page = paginator.page(self.page_number)
        return list(self.page)

    def get_paginated_response(self, data):
        return Response(standardized_response(data={
            'results': data,
            'page': self.page_number,
            'total_pages': self.total_pages,
            'total_items': self.total_items,
        }))


class ProductPagination(StandardResultsPagination):
    page_size = 6
