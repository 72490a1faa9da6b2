# mines/routing.py
from django.urls import re_path
from .consumers import MinesConsumer

websocket_urlpatterns = [
    re_path(r"ws/mines/$", MinesConsumer.as_asgi()),
]
