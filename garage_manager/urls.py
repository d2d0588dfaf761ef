"""
URL configuration for garage_manager.

The job engine is consumed in-process; no HTTP surface is exposed yet.
"""

urlpatterns = []
