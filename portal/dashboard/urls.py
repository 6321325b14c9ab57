from django.urls import path

from . import views

app_name = "dashboard"

urlpatterns = [
    path("navigation", views.navigation, name="navigation"),
    path("dashboard", views.dashboard_home, name="dashboard"),
]
