from swipematch.api.v1.swipes.endpoints import router

__all__ = ["router"]
