from django.urls import path

from . import views

app_name = "staff"

urlpatterns = [
    path("users", views.user_list, name="user_list"),
    path("admin/users", views.create_user, name="create_user"),
    path("admin/users/<int:user_id>", views.user_detail, name="user_detail"),
    path(
        "admin/users/<int:user_id>/reset-password",
        views.reset_password,
        name="reset_password",
    ),
    path("departments", views.departments, name="departments"),
    path(
        "departments/<int:department_id>",
        views.department_detail,
        name="department_detail",
    ),
    path("inactive-accounts", views.inactive_accounts, name="inactive_accounts"),
    path(
        "inactive-accounts/<int:user_id>/deactivate",
        views.deactivate_account,
        name="deactivate_account",
    ),
]
