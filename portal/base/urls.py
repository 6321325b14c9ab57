from django.urls import path

from . import views

app_name = "base"

urlpatterns = [
    path("login", views.login_view, name="login"),
    path("logout", views.logout_view, name="logout"),
    path("user", views.current_user, name="current_user"),
    path("user/change-password", views.change_password, name="change_password"),
    path("admin/login-audit", views.login_audit, name="login_audit"),
    path("admin/factory-reset", views.factory_reset, name="factory_reset"),
    path(
        "admin/bulk-import/<str:import_type>",
        views.bulk_import,
        name="bulk_import",
    ),
    path(
        "admin/bulk-import/<str:import_type>/template",
        views.bulk_import_template,
        name="bulk_import_template",
    ),
]
