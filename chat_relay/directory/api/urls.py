from django.urls import path

from .views import AdminDeleteUsersView
from .views import AdminUserListView
from .views import SigninView
from .views import SignupView

app_name = "directory"
urlpatterns = [
    path("signup", SignupView.as_view(), name="signup"),
    path("signin", SigninView.as_view(), name="signin"),
    path("admin/users", AdminUserListView.as_view(), name="admin-users"),
    path(
        "admin/delete-users",
        AdminDeleteUsersView.as_view(),
        name="admin-delete-users",
    ),
]
