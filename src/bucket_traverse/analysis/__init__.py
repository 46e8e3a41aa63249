"""Analysis module."""

from bucket_traverse.analysis.listing_report import (
    CATEGORIES,
    CategoryStats,
    ListingReport,
    analyze_listing,
)

__all__ = [
    "CATEGORIES",
    "CategoryStats",
    "ListingReport",
    "analyze_listing",
]
