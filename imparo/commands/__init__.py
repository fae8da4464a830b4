from .admin import register_admin_commands
from .chat_router import register_chat_router
from .learning import register_learning_commands
from .tutor import register_tutor_commands

__all__ = [
    "register_admin_commands",
    "register_chat_router",
    "register_learning_commands",
    "register_tutor_commands",
]
