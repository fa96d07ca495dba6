"""
User API router - delegates to the user controller.
"""

from isyourdayok.api.controller.user.user_controller import router

__all__ = ["router"]
