"""
Client side of the CMS admin.

Construct one transport at startup and pass it to the repositories and the
session manager:

    transport = HttpTransport()
    repos = Repositories(transport)
    session = SessionManager(KeycloakProvider(), transport, FileTokenStore())
    news = NewsController(repos.news, session)
"""

from cmsadmin.client.controllers import (
    CategoryController,
    GameController,
    NewsController,
    NewsTranslationController,
    PostController,
    PostReplyController,
)
from cmsadmin.client.identity import KeycloakProvider
from cmsadmin.client.live import LiveQuery, QueryStatus
from cmsadmin.client.media import MediaStorage, UploadResult
from cmsadmin.client.repositories import Repositories
from cmsadmin.client.session import SessionManager, SessionState
from cmsadmin.client.token_store import FileTokenStore, MemoryTokenStore
from cmsadmin.client.transport import HttpTransport, LocalTransport, Subscription

__all__ = [
    # Transport
    "HttpTransport",
    "LocalTransport",
    "Subscription",
    "Repositories",
    # Live state
    "LiveQuery",
    "QueryStatus",
    "CategoryController",
    "GameController",
    "NewsController",
    "NewsTranslationController",
    "PostController",
    "PostReplyController",
    # Auth
    "KeycloakProvider",
    "SessionManager",
    "SessionState",
    "FileTokenStore",
    "MemoryTokenStore",
    # Media
    "MediaStorage",
    "UploadResult",
]
