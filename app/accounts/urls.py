"""
URL configuration for the member pages (mounted at /user/).
"""

from django.urls import path

from accounts import views

app_name = "accounts"

urlpatterns = [
    path("", views.index, name="index"),
    path("edit/", views.edit, name="edit"),
    path("update/", views.update, name="update"),
    path("upgrade/", views.upgrade, name="upgrade"),
    path("role/", views.update_role, name="update_role"),
    path("update-card/", views.update_card, name="update_card"),
    path("downgrade/", views.downgrade, name="downgrade"),
    path("cancel/", views.cancel, name="cancel"),
    path("delete/", views.delete, name="delete"),
]
