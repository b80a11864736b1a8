"""URL routing for the dashboard API.


The /api/plaid/* namespace covers bank linking and mint audit records;
/api/solana/* exposes read helpers over the RPC node.
"""

from django.contrib import admin
from django.urls import path, include


urlpatterns = [
	path("admin/", admin.site.urls),
	path("api/", include("api.urls")),
]
