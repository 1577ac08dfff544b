"""
WeChat Feed - official account article ingestion.

This package saves article metadata from history listing pushes and
article detail pages into a document store, keyed by each article's
(biz, mid, idx) identity.

Main entry point is the CLI via `wechat-feed` commands.

Example:
    $ wechat-feed ingest-batch -i listing.json -s data/
"""

__all__ = [
    "__version__",
    "CanonicalArticleId",
    "CoalescingLookupCache",
    "IngestionPipeline",
    "extract_units",
    "parse_identity",
]
__version__ = "0.1.0"

from .core.identity import extract_units, parse_identity
from .core.profile_cache import CoalescingLookupCache
from .core.types import CanonicalArticleId
from .pipeline import IngestionPipeline
