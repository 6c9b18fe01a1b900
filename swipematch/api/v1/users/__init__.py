from swipematch.api.v1.users.endpoints import router

__all__ = ["router"]
