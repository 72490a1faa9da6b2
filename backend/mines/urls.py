from django.urls import path
from . import views

urlpatterns = [
    path("bet/", views.place_bet, name="mines-bet"),
    path("reveal/", views.reveal_tile, name="mines-reveal"),
    path("cashout/", views.cashout, name="mines-cashout"),
    path("active/", views.active_game, name="mines-active"),
    path("history/", views.history, name="mines-history"),
    path("games/<uuid:game_id>/", views.game_state, name="mines-game"),
    path("verify/", views.verify, name="mines-verify"),
]
