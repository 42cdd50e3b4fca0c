from django.urls import path
from .views import customer_list_create, customer_detail, staff_list_create, staff_detail

urlpatterns = [
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/<uuid:pk>/', customer_detail, name='customer-detail'),
    path('staff/', staff_list_create, name='staff-list-create'),
    path('staff/<uuid:pk>/', staff_detail, name='staff-detail'),
]
