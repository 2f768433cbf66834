# orders/api/filters.py

import django_filters

from orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status__code", lookup_expr="iexact")
    customer = django_filters.UUIDFilter(field_name="customer_id")
    created_after = django_filters.IsoDateTimeFilter(
        field_name="created_at", lookup_expr="gte"
    )
    created_before = django_filters.IsoDateTimeFilter(
        field_name="created_at", lookup_expr="lte"
    )

    class Meta:
        model = Order
        fields = ["status", "customer", "created_after", "created_before"]
