"""
Achievement API router - delegates to the achievement controller.
"""

from isyourdayok.api.controller.achievement.achievement_controller import router

__all__ = ["router"]
