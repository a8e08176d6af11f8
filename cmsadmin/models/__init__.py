"""
Pydantic models for the CMS admin.

All data shapes defined here. No imports from store, handlers or client.
"""

from cmsadmin.models.category import Category, CreateCategoryRequest, UpdateCategoryRequest
from cmsadmin.models.common import AuthorArgs, IdArgs, ListFilters, NoArgs, SlugArgs
from cmsadmin.models.game import CreateGameRequest, Game, UpdateGameRequest
from cmsadmin.models.news import CategorySlugArgs, CreateNewsRequest, News, UpdateNewsRequest
from cmsadmin.models.post import (
    CreatePostReplyRequest,
    CreatePostRequest,
    ParentReplyArgs,
    Post,
    PostIdArgs,
    PostReply,
    UpdatePostReplyRequest,
    UpdatePostRequest,
)
from cmsadmin.models.translation import (
    EffectiveContent,
    LocaleCoverage,
    LocalizedListArgs,
    NewsIdArgs,
    NewsTranslation,
    NewsWithCoverage,
    ResolvedNews,
    SetTranslationStatusRequest,
    TranslationCoverage,
    TranslationKey,
    TranslationStatus,
    UpsertTranslationRequest,
)
from cmsadmin.models.user import TokenSet, User

__all__ = [
    # Shared args
    "NoArgs",
    "IdArgs",
    "SlugArgs",
    "AuthorArgs",
    "ListFilters",
    # Category models
    "Category",
    "CreateCategoryRequest",
    "UpdateCategoryRequest",
    # News models
    "News",
    "CreateNewsRequest",
    "UpdateNewsRequest",
    "CategorySlugArgs",
    # Translation models
    "NewsTranslation",
    "TranslationStatus",
    "TranslationKey",
    "UpsertTranslationRequest",
    "SetTranslationStatusRequest",
    "NewsIdArgs",
    "LocalizedListArgs",
    "EffectiveContent",
    "ResolvedNews",
    "LocaleCoverage",
    "TranslationCoverage",
    "NewsWithCoverage",
    # Post models
    "Post",
    "CreatePostRequest",
    "UpdatePostRequest",
    "PostReply",
    "CreatePostReplyRequest",
    "UpdatePostReplyRequest",
    "PostIdArgs",
    "ParentReplyArgs",
    # Game models
    "Game",
    "CreateGameRequest",
    "UpdateGameRequest",
    # Session models
    "User",
    "TokenSet",
]
