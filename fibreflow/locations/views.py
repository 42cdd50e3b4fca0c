from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from fibreflow.core.api import list_response, create_response, update_response, archive_instance_response
from .models import Location
from .serializers import LocationSerializer


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def location_list_create(request):
    """List locations (?archived=, ?province=) or create a new location"""
    if request.method == 'GET':
        province = request.query_params.get('province')
        queryset = Location.objects.all().order_by('location_name')
        if province:
            queryset = queryset.filter(province__iexact=province)
        return list_response(request, 'locations', queryset, LocationSerializer, cacheable=not province)
    return create_response(request, 'locations', LocationSerializer, lambda l: {'location_name': l.location_name})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def location_detail(request, pk):
    """Retrieve, update or archive a location"""
    location = get_object_or_404(Location, pk=pk)

    if request.method == 'GET':
        return Response(LocationSerializer(location).data)
    elif request.method in ('PUT', 'PATCH'):
        return update_response(request, 'locations', location, LocationSerializer, partial=request.method == 'PATCH')
    else:  # DELETE
        return archive_instance_response(request, 'locations', location)
