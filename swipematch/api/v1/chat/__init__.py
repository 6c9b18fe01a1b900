from swipematch.api.v1.chat.endpoints import router

__all__ = ["router"]
