from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import DocumentViewSet, SigningViewSet, custom_obtain_auth_token

router = DefaultRouter()
router.register(r'documents', DocumentViewSet, basename='document')

urlpatterns = [
    path('api-token-auth/', custom_obtain_auth_token, name='api-token-auth'),
    path('', include(router.urls)),
    path('sign/<str:token>/', SigningViewSet.as_view({
        'get': 'retrieve',
        'post': 'submit'
    }), name='sign'),
    path('sign/<str:token>/decline/', SigningViewSet.as_view({
        'post': 'decline'
    }), name='sign-decline'),
    path('sign/<str:token>/delegate/', SigningViewSet.as_view({
        'post': 'delegate'
    }), name='sign-delegate'),
    path('sign/<str:token>/access/', SigningViewSet.as_view({
        'post': 'access'
    }), name='sign-access'),
]
