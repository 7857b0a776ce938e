from django.urls import path
from .views import login, signup, user

urlpatterns = [
    path('login/', login, name='login'),
    path('signup/', signup, name='signup'),
    path('user/', user, name='user'),
]
