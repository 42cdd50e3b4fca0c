from django.urls import path
from .views import location_list_create, location_detail

urlpatterns = [
    path('locations/', location_list_create, name='location-list-create'),
    path('locations/<uuid:pk>/', location_detail, name='location-detail'),
]
