"""
Authentication API router - delegates to the auth controller.
"""

from isyourdayok.api.controller.auth.auth_controller import router

__all__ = ["router"]
