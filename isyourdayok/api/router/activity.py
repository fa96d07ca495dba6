"""
Activity API router - delegates to the activity controller.
"""

from isyourdayok.api.controller.activity.activity_controller import router

__all__ = ["router"]
