"""Subscription store: entitlement checks with a persisted developer mode."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from mindmesh.integrations.revenuecat import (
    MOCK_OFFERINGS,
    BillingError,
    RevenueCatClient,
    dev_mode_subscription,
)
from mindmesh.services.kv_slot import KeyValueSlot

logger = logging.getLogger(__name__)

PRO_ENTITLEMENT = "pro"


class SubscriptionStore:
    """Subscription state for one user.

    While `dev_mode_enabled` is set the store reports an active `pro`
    entitlement without asking the billing provider.
    """

    def __init__(
        self,
        user_id: str,
        slot: KeyValueSlot,
        billing: Optional[RevenueCatClient] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.user_id = user_id
        self.slot = slot
        self.billing = billing or RevenueCatClient()
        self._now = now or datetime.utcnow
        self.error: Optional[str] = None
        self.dev_mode_enabled = bool((slot.read() or {}).get("dev_mode_enabled", False))
        self.subscription: Optional[Dict[str, Any]] = None

    @classmethod
    def for_user(cls, user_id: str, billing: Optional[RevenueCatClient] = None,
                 state_dir: Optional[str] = None) -> "SubscriptionStore":
        return cls(user_id, KeyValueSlot(f"subscription-{user_id}", state_dir), billing)

    def set_dev_mode(self, enabled: bool) -> bool:
        try:
            self.slot.write({"dev_mode_enabled": enabled})
        except OSError as e:
            self.error = f"Failed to save developer mode: {e}"
            logger.warning(f"Could not write subscription slot: {type(e).__name__}")
            return False
        self.dev_mode_enabled = enabled
        self.subscription = None
        self.error = None
        return True

    def load(self) -> Dict[str, Any]:
        """Fetch the current subscription (simulated in developer mode).

        Billing failures leave an inactive subscription and set `error`.
        """
        if self.dev_mode_enabled:
            self.subscription = dev_mode_subscription(self._now())
            return self.subscription
        try:
            self.subscription = self.billing.get_subscription(self.user_id, self._now())
            self.error = None
        except BillingError as e:
            self.error = str(e)
            self.subscription = {
                "is_active": False,
                "product_identifier": None,
                "purchase_date": None,
                "expiration_date": None,
                "will_renew": None,
                "entitlements": {},
            }
        return self.subscription

    def _current(self) -> Dict[str, Any]:
        return self.subscription if self.subscription is not None else self.load()

    def is_subscribed(self) -> bool:
        return self.dev_mode_enabled or bool(self._current().get("is_active"))

    def has_entitlement(self, entitlement: str = PRO_ENTITLEMENT) -> bool:
        if self.dev_mode_enabled:
            return True
        info = self._current().get("entitlements", {}).get(entitlement)
        return bool(info and info.get("is_active"))

    def get_active_product_id(self) -> Optional[str]:
        current = self._current()
        return current.get("product_identifier") if current.get("is_active") else None

    def get_offerings(self) -> List[Dict[str, Any]]:
        """Offerings from the billing provider; mock offerings in dev mode or when unconfigured."""
        if self.dev_mode_enabled or not self.billing.configured:
            return MOCK_OFFERINGS
        try:
            return self.billing.get_offerings(self.user_id)
        except BillingError as e:
            self.error = str(e)
            logger.warning("Falling back to mock offerings")
            return MOCK_OFFERINGS
