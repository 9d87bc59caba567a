from django.urls import path
from .views import claim_reward, pool_info, stake, unstake, user_stakes

urlpatterns = [
    path("stake", stake, name="pool-stake"),
    path("unstake", unstake, name="pool-unstake"),
    path("claim", claim_reward, name="pool-claim"),
    path("stakes", user_stakes, name="pool-stakes"),
    path("info", pool_info, name="pool-info"),
]
