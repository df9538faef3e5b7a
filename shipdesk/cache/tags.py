from __future__ import annotations

from enum import Enum


class CacheTag(str, Enum):
    ORDER = "Order"
    VENDOR_ORDER = "VendorOrder"
    CAN_ID = "CanId"
    PROFILE = "Profile"
    MARKETPLACE = "Marketplace"
    NOTIFICATIONS = "Notifications"
    COMMENTS = "Comments"
    DOCUMENTS = "Documents"
    ANNOUNCEMENTS = "Announcements"
    DIGITAL_STAMP = "DigitalStamp"
    VOUCHER = "Voucher"
    CATEGORY_FILTER = "CategoryFilter"
    CUSTOMER_ADDRESS = "CustomerAddress"
    VENDOR_STORE_REVIEW = "VendorStoreReview"
    BRANCHES = "Branches"


ALL_TAGS = tuple(CacheTag)

# Same for every user; only dropped on identity change when partial
# invalidation is disabled (the default).
GLOBAL_TAGS = frozenset({CacheTag.CATEGORY_FILTER, CacheTag.ANNOUNCEMENTS, CacheTag.BRANCHES})

IDENTITY_SCOPED_TAGS = tuple(t for t in ALL_TAGS if t not in GLOBAL_TAGS)
