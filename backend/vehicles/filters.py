import django_filters
from django.db.models import Q

from .models import Vehicle


class CommaSeparatedCharFilter(django_filters.BaseInFilter, django_filters.CharFilter):
    """?fuel_types=petrol,diesel"""


class VehicleFilter(django_filters.FilterSet):
    """Marketplace search across live listings"""

    q = django_filters.CharFilter(method='filter_search', label='Search')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    min_year = django_filters.NumberFilter(field_name='year', lookup_expr='gte')
    max_year = django_filters.NumberFilter(field_name='year', lookup_expr='lte')
    max_kilometers = django_filters.NumberFilter(field_name='kilometers', lookup_expr='lte')
    fuel_types = CommaSeparatedCharFilter(field_name='fuel_type', lookup_expr='in')
    transmissions = CommaSeparatedCharFilter(field_name='transmission', lookup_expr='in')
    makes = CommaSeparatedCharFilter(method='filter_makes')
    state = django_filters.CharFilter(field_name='dealer__state', lookup_expr='iexact')
    city = django_filters.CharFilter(field_name='dealer__city', lookup_expr='iexact')
    verified_only = django_filters.BooleanFilter(method='filter_verified_only')
    sort_by = django_filters.CharFilter(method='filter_sort_by')

    SORT_ORDERS = {
        'price_low': ['price'],
        'price_high': ['-price'],
        'year_new': ['-year', '-created_at'],
        'km_low': ['kilometers'],
        'newest': ['-created_at'],
    }

    class Meta:
        model = Vehicle
        fields = ['q', 'min_price', 'max_price', 'min_year', 'max_year', 'max_kilometers', 'fuel_types',
                  'transmissions', 'makes', 'state', 'city', 'verified_only', 'sort_by']

    def filter_search(self, queryset, name, value):
        """Every word must match make, model, variant, year or description"""
        words = value.split() if value else []
        for word in words:
            word_q = (
                Q(make__icontains=word) |
                Q(model__icontains=word) |
                Q(variant__icontains=word) |
                Q(description__icontains=word)
            )
            if word.isdigit():
                word_q |= Q(year=int(word))
            queryset = queryset.filter(word_q)
        return queryset

    def filter_makes(self, queryset, name, value):
        if not value:
            return queryset
        makes_q = Q()
        for make in value:
            makes_q |= Q(make__iexact=make.strip())
        return queryset.filter(makes_q)

    def filter_verified_only(self, queryset, name, value):
        if value:
            return queryset.filter(rc_verified=True)
        return queryset

    def filter_sort_by(self, queryset, name, value):
        return queryset.order_by(*self.SORT_ORDERS.get(value, self.SORT_ORDERS['newest']))
