"""
Chat API router - delegates to the chat controller.
"""

from isyourdayok.api.controller.chat.chat_controller import router

__all__ = ["router"]
