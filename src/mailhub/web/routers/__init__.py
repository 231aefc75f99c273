from mailhub.web.routers.admin import router as admin_router
from mailhub.web.routers.auth import router as auth_router
from mailhub.web.routers.magic_links import router as magic_links_router
from mailhub.web.routers.mailboxes import router as mailboxes_router
from mailhub.web.routers.messages import router as messages_router
from mailhub.web.routers.profile import router as profile_router

__all__ = [
    "admin_router",
    "auth_router",
    "magic_links_router",
    "mailboxes_router",
    "messages_router",
    "profile_router",
]
