from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404

from fibreflow.core.api import list_response, create_response, update_response, archive_instance_response
from .models import Customer, Staff
from .serializers import CustomerSerializer, StaffSerializer


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List customers (?archived=, ?search=) or create a new customer"""
    if request.method == 'GET':
        search = request.query_params.get('search')
        queryset = Customer.objects.all().order_by('name')
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(email__icontains=search) | Q(phone__icontains=search))
        return list_response(request, 'new_customers', queryset, CustomerSerializer, cacheable=not search)
    return create_response(request, 'new_customers', CustomerSerializer, lambda c: {'name': c.name})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or archive a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        return Response(CustomerSerializer(customer).data)
    elif request.method in ('PUT', 'PATCH'):
        return update_response(request, 'new_customers', customer, CustomerSerializer, partial=request.method == 'PATCH')
    else:  # DELETE
        return archive_instance_response(request, 'new_customers', customer)


# Staff views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def staff_list_create(request):
    """List staff (?archived=, ?search=, ?is_active=) or create a staff member"""
    if request.method == 'GET':
        search = request.query_params.get('search')
        is_active = request.query_params.get('is_active')
        queryset = Staff.objects.all().order_by('name')
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(email__icontains=search) | Q(role__icontains=search))
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')
        cacheable = not search and is_active is None
        return list_response(request, 'staff', queryset, StaffSerializer, cacheable=cacheable)
    return create_response(request, 'staff', StaffSerializer, lambda s: {'name': s.name, 'role': s.role})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def staff_detail(request, pk):
    """Retrieve, update or archive a staff member"""
    staff = get_object_or_404(Staff, pk=pk)

    if request.method == 'GET':
        return Response(StaffSerializer(staff).data)
    elif request.method in ('PUT', 'PATCH'):
        return update_response(request, 'staff', staff, StaffSerializer, partial=request.method == 'PATCH')
    else:  # DELETE
        return archive_instance_response(request, 'staff', staff)
