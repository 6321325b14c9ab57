from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("base.urls")),
    path("api/", include("staff.urls")),
    path("api/", include("students.urls")),
    path("api/", include("academics.urls")),
    path("api/", include("planning.urls")),
    path("api/", include("certificates.urls")),
    path("api/", include("dashboard.urls")),
]

handler404 = "base.views.page_not_found"
handler500 = "base.views.server_error"
