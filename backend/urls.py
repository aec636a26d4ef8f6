"""
URL configuration for the GradVillage backend.

- /admin/: Django admin (Jazzmin)
- /api/: GradVillage REST API (scholarships.urls)
- /api/payments/: Stripe config and webhook (core.stripe_integration)
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("scholarships.urls")),
    path("api/payments/", include("core.stripe_integration.urls")),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
