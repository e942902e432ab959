"""
URL configuration for the StrideOS backend.

Every app mounts its routes under ``api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "StrideOS Admin Panel"
admin.site.site_title = "StrideOS Admin Portal"
admin.site.index_title = "Welcome to StrideOS Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('strideos.core.urls')),
    path('api/v1/', include('strideos.clients.urls')),
    path('api/v1/', include('strideos.projects.urls')),
    path('api/v1/', include('strideos.tasks.urls')),
    path('api/v1/', include('strideos.sprints.urls')),
    path('api/v1/', include('strideos.notifications.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
