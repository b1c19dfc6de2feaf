"""
URL configuration for the membership site.

URL Structure:
    /                              - Landing page
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /login/                        - Email/password login
    /logout/                       - Logout (POST)
    /user/                         - Member pages (accounts app)
        edit/                      - Profile form
        update/                    - Save profile (POST)
        upgrade/                   - Start premium Checkout (POST)
        role/                      - Staff premium shortcut (POST)
        update-card/               - Start card-update Checkout (POST)
        downgrade/                 - Cancellation page
        cancel/                    - Cancel premium plan (POST)
        delete/                    - Delete account (POST)
    /payments/                     - Payment endpoints
        webhooks/stripe/           - Stripe webhook endpoint (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.contrib.auth import views as auth_views
from django.urls import include, path
from django.views.generic import TemplateView

from core.views import health_check

urlpatterns = [
    path("", TemplateView.as_view(template_name="home.html"), name="home"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # Authentication
    path("login/", auth_views.LoginView.as_view(), name="login"),
    path("logout/", auth_views.LogoutView.as_view(), name="logout"),
    # Member pages
    path("user/", include("accounts.urls")),
    # Payments
    path("payments/", include("payments.urls")),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Membership Admin"
admin.site.site_title = "Membership Admin Portal"
admin.site.index_title = "Members and billing"
