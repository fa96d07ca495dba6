"""
Admin API router - delegates to the admin controller.
"""

from isyourdayok.api.controller.admin.admin_controller import router

__all__ = ["router"]
