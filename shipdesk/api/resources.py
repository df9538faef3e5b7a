"""
Resource endpoints consumed by screens. Each GET is cached under one tag;
mutations invalidate the tag whose data they change. Quotes and contact
requests are plain POSTs and never cached.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from shipdesk.api.base import BaseApi
from shipdesk.api.schemas import ChangePasswordRequest, ContactRequest, DeleteProfileRequest, RatesRequest
from shipdesk.cache.tags import CacheTag
from shipdesk.errors import ApiError
from shipdesk.session.store import SessionStore


def _params(**values: Any) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None and v != ""}


class ResourceApi:
    def __init__(self, *, api: BaseApi, store: SessionStore):
        self._api = api
        self._store = store

    def _user_id(self) -> str:
        session = self._store.current_session()
        if session is None:
            raise ApiError("Not logged in", status=401)
        return session.user_id

    def _customer_ref(self) -> str:
        session = self._store.current_session()
        if session is None or not session.type_ref:
            raise ApiError("No customer reference on the current session", status=401)
        return session.type_ref

    # Tracking

    async def track_order(self, tracking_id: str, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.ORDER, f"/public/tracking/{tracking_id}", force=force)

    async def marketplace_tracking(self, tracking_code: str) -> Any:
        # Live status; always refetched.
        return await self._api.query(CacheTag.ORDER, f"/public/marketplace-tracker/{tracking_code}", force=True)

    # Quotes and contact

    async def rates(self, *, destination: str, shipment_type: str, service_type: str, weight: float) -> Any:
        body = RatesRequest(
            destination=destination,
            type=shipment_type.lower(),
            service=service_type.lower(),
            weight=weight,
        )
        return await self._api.request("POST", "/public/rates", json=body.model_dump())

    async def contact(
        self,
        *,
        name: str,
        phone: str,
        description: str,
        inquiry_of: str,
        email: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> Any:
        body = ContactRequest(
            name=name, phone=phone, description=description, inquiryOf=inquiry_of, email=email, subject=subject
        )
        return await self._api.request("POST", "/public/contact", json=body.model_dump(exclude_none=True))

    # Branches

    async def branches(
        self,
        *,
        account: Optional[str] = None,
        entity: Optional[str] = None,
        page: int = 1,
        search: str = "",
        force: bool = False,
    ) -> Any:
        params = _params(page=page, search=search, account=account, entity=entity)
        return await self._api.query(CacheTag.BRANCHES, "/public/branch-list", params=params, force=force)

    async def branch(self, branch_id: str, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.BRANCHES, f"/public/branch/{branch_id}", force=force)

    async def public_branches(
        self,
        *,
        account_id: str,
        entity_id: str,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        status: str = "Active",
        force: bool = False,
    ) -> Any:
        params = _params(
            accountId=account_id, entityId=entity_id, page=page, limit=limit, status=status, search=search.strip()
        )
        return await self._api.query(CacheTag.BRANCHES, "/public-branches/list/public-branch", params=params, force=force)

    async def public_service_providers(
        self, *, page: int = 1, limit: int = 100, search: str = "", status: str = "Active", force: bool = False
    ) -> Any:
        params = _params(page=page, limit=limit, status=status, search=search.strip())
        return await self._api.query(
            CacheTag.BRANCHES, "/public-branches/list/service-providers", params=params, force=force
        )

    # Dropdowns

    async def countries(self, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.CAN_ID, "/public/country/ddl", force=force)

    async def accounts(self, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.CAN_ID, "/accounts/ddl/public", force=force)

    async def service_provider_options(self, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.CAN_ID, "/entities/service-providers", force=force)

    async def vendor_customers(self, *, force: bool = False) -> Any:
        params = {"vendor": self._customer_ref()}
        return await self._api.query(CacheTag.VENDOR_ORDER, "/customer-profile/ddl", params=params, force=force)

    async def vendor_products(self, *, force: bool = False) -> Any:
        params = {"customerId": self._customer_ref()}
        return await self._api.query(
            CacheTag.VENDOR_ORDER, "/vendor/products/ddl/vendor-product", params=params, force=force
        )

    async def coupons(self, *, force: bool = False) -> Any:
        params = {"vendor": self._customer_ref()}
        return await self._api.query(CacheTag.VOUCHER, "/vendor/coupons/ddl", params=params, force=force)

    async def category_filters(self, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.CATEGORY_FILTER, "/packagetype/options", params={"status": "Active"}, force=force)

    async def package_types(self, *, keyword: Optional[str] = None, force: bool = False) -> Any:
        return await self._api.query(CacheTag.CATEGORY_FILTER, "/packagetype/ddl", params=_params(keyword=keyword), force=force)

    # Account

    async def profile(self, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.PROFILE, f"/users/profile/{self._user_id()}", force=force)

    async def vendor_profile(self, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.PROFILE, f"/vendor/{self._customer_ref()}", force=force)

    async def customer(self, customer_id: Optional[str] = None, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.PROFILE, f"/customer/{customer_id or self._customer_ref()}", force=force)

    async def service_providers(self, *, force: bool = False) -> Any:
        data = await self._api.query(CacheTag.PROFILE, f"/vendor/{self._customer_ref()}/service-providers", force=force)
        return {"data": data or []}

    async def change_password(self, *, previous_password: str, password: str, confirm_password: str) -> Any:
        user_id = self._user_id()
        body = ChangePasswordRequest(
            userId=user_id, previousPassword=previous_password, password=password, confirmPassword=confirm_password
        )
        return await self._api.mutate(
            "PUT", f"/users/change-profile-password/{user_id}", json=body.model_dump(), invalidates=[CacheTag.PROFILE]
        )

    async def edit_profile(self, changes: Dict[str, Any], *, customer_id: Optional[str] = None) -> Any:
        customer_id = customer_id or self._customer_ref()
        body = {**changes, "customerId": customer_id}
        return await self._api.mutate("PUT", f"/customer/{customer_id}", json=body, invalidates=[CacheTag.PROFILE])

    async def change_profile_image(self, avatar: Dict[str, Any]) -> Any:
        return await self._api.mutate(
            "PUT", f"/users/change-profile/{self._user_id()}", json={"avatar": avatar}, invalidates=[CacheTag.PROFILE]
        )

    async def delete_profile(self, *, password: str) -> Any:
        body = DeleteProfileRequest(password=password)
        return await self._api.mutate("POST", "/users/me/delete", json=body.model_dump(), invalidates=[CacheTag.PROFILE])

    async def customer_addresses(self, *, force: bool = False) -> Any:
        path = f"/customer-address/activeAddressMarketplace/{self._customer_ref()}"
        return await self._api.query(CacheTag.CUSTOMER_ADDRESS, path, force=force)

    # Notifications

    async def notifications(self, *, is_read: Optional[bool] = None, force: bool = False) -> Any:
        params = {"isRead": str(is_read).lower()} if is_read is not None else None
        return await self._api.query(CacheTag.NOTIFICATIONS, "/notifications", params=params, force=force)

    async def mark_notification_read(self, notification_id: str) -> Any:
        return await self._api.mutate("PUT", f"/notifications/{notification_id}", invalidates=[CacheTag.NOTIFICATIONS])

    async def mark_all_notifications_read(self) -> Any:
        return await self._api.mutate("PUT", "/notifications", invalidates=[CacheTag.NOTIFICATIONS])

    # Marketplace

    async def product_detail(self, slug: str, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.MARKETPLACE, f"/public/productDetail/{slug}", force=force)

    async def related_products(self, *, product_id: str, category_id: str, limit: int = 8, force: bool = False) -> Any:
        params = {"productId": product_id, "categoryId": category_id, "limit": limit}
        data = await self._api.query(CacheTag.MARKETPLACE, "/public/categories/related-product", params=params, force=force)
        return data or []

    async def campaign_products(
        self,
        slug: str,
        *,
        page: int = 1,
        limit: int = 8,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_direction: str = "-1",
        force: bool = False,
    ) -> Any:
        params = _params(page=page, limit=limit, sortBy=sort_by, sortDirection=sort_direction, slug=slug, search=search)
        return await self._api.query(CacheTag.MARKETPLACE, "/public/campaign-product/list", params=params, force=force)

    async def create_order(self, order: Dict[str, Any]) -> Any:
        return await self._api.mutate("POST", "/public/create-order", json=order, invalidates=[CacheTag.MARKETPLACE])

    async def product_reviews(
        self, slug: str, *, page: Optional[int] = None, limit: Optional[int] = None, force: bool = False
    ) -> Any:
        params = _params(productSlug=slug, page=page, limit=limit)
        return await self._api.query(CacheTag.VENDOR_STORE_REVIEW, "/review/public", params=params, force=force)

    # Campaigns and blog

    async def campaigns(self, *, force: bool = False) -> Any:
        data = await self._api.query(CacheTag.ANNOUNCEMENTS, "/public/campaign/list", force=force)
        return data.get("data", []) if isinstance(data, dict) else []

    async def campaign(self, slug: str, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.ANNOUNCEMENTS, f"/public/campaign/{slug}", force=force)

    async def blog_posts(self, *, page: int = 1, limit: int = 15, search: str = "", force: bool = False) -> Any:
        params = _params(page=page, limit=limit, search=search.strip())
        return await self._api.query(CacheTag.ANNOUNCEMENTS, "/public/blog/list", params=params, force=force)

    async def blog_post(self, slug: str, *, force: bool = False) -> Any:
        return await self._api.query(CacheTag.ANNOUNCEMENTS, f"/public/blog/{slug}", force=force)

    # Documents

    async def upload_document(
        self, *, filename: str, content: bytes, content_type: str, account_id: str, file_path: str
    ) -> Any:
        return await self._api.mutate(
            "POST",
            "/doSpace",
            files={"file": (filename, content, content_type)},
            data={"accountId": account_id, "filePath": file_path},
            invalidates=[CacheTag.DOCUMENTS],
        )

    async def delete_document(self, body: Dict[str, Any]) -> Any:
        return await self._api.mutate("DELETE", "/doSpace", json=body, invalidates=[CacheTag.DOCUMENTS])
