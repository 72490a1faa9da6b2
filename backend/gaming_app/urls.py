from django.contrib import admin
from django.urls import path, include


urlpatterns = [
    path('admin-panel/', admin.site.urls),

    path('api/wallet/', include('wallets.urls')),
    path('api/mines/', include('mines.urls')),
]
