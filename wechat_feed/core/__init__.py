"""
Core domain models and business logic.

This package contains identity extraction, detail page parsing, merge
policies and the profile cache, independent of the CLI and runner.
"""

from .types import Article, CanonicalArticleId, ListingUnit, Profile
from .identity import extract_units, parse_identity
from .detail import parse_detail
from .profile_cache import CoalescingLookupCache, ProfileCache

__all__ = [
    "Article",
    "CanonicalArticleId",
    "ListingUnit",
    "Profile",
    "extract_units",
    "parse_identity",
    "parse_detail",
    "CoalescingLookupCache",
    "ProfileCache",
]
