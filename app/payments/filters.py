import django_filters as filters

from payments.models import Payout
from payments.state_machines import IN_FLIGHT_STATUSES, PayoutMethod, PayoutStatus


class PayoutFilter(filters.FilterSet):
    status = filters.MultipleChoiceFilter(choices=PayoutStatus.choices)
    method = filters.MultipleChoiceFilter(choices=PayoutMethod.choices)
    host_id = filters.NumberFilter(field_name="host_id")
    start_date = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end_date = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")
    in_flight = filters.BooleanFilter(method="filter_in_flight")

    class Meta:
        model = Payout
        fields = ["status", "method", "host_id", "start_date", "end_date", "in_flight"]

    def filter_in_flight(self, queryset, name, value):
        if value:
            return queryset.filter(status__in=IN_FLIGHT_STATUSES)
        return queryset.exclude(status__in=IN_FLIGHT_STATUSES)
