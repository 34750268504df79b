"""
URL configuration for the vidfetch project.

The whole public surface is the download endpoint.
"""

from django.urls import path

from clips.views import download_view

urlpatterns = [
    path('download', download_view, name='download'),
    path('download/', download_view),
]
