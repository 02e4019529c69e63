"""RevenueCat integration for MindMesh subscription status and offerings."""

import logging
import os
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import requests
from dotenv import load_dotenv

from mindmesh.integrations.timestamps import parse_timestamp
from mindmesh.models.constants import HTTP_TIMEOUT_SEC

load_dotenv()

logger = logging.getLogger(__name__)

REVENUECAT_API_BASE = "https://api.revenuecat.com/v1"

MOCK_OFFERINGS: List[Dict] = [
    {
        "identifier": "default",
        "server_description": "Default offering",
        "packages": [
            {
                "identifier": "monthly",
                "package_type": "MONTHLY",
                "product": {
                    "identifier": "mindmesh_pro_monthly",
                    "title": "MindMesh Pro (Monthly)",
                    "description": "MindMesh Pro Monthly Subscription",
                    "price": "12.99",
                    "price_string": "$12.99",
                    "currency_code": "USD",
                },
                "offering_identifier": "default",
            },
            {
                "identifier": "annual",
                "package_type": "ANNUAL",
                "product": {
                    "identifier": "mindmesh_pro_annual",
                    "title": "MindMesh Pro (Annual)",
                    "description": "MindMesh Pro Annual Subscription",
                    "price": "99.99",
                    "price_string": "$99.99",
                    "currency_code": "USD",
                },
                "offering_identifier": "default",
            },
        ],
    },
]


class BillingError(Exception):
    """Raised when the billing provider cannot be reached or is not configured."""


def dev_mode_subscription(now: Optional[datetime] = None) -> Dict:
    """Simulated active 'pro' subscription used while developer mode is on."""
    now = now or datetime.utcnow()
    expires = now + timedelta(days=365)
    return {
        "is_active": True,
        "product_identifier": "dev_mode_pro",
        "purchase_date": now,
        "expiration_date": expires,
        "will_renew": True,
        "entitlements": {
            "pro": {
                "identifier": "pro",
                "product_identifier": "dev_mode_pro",
                "is_active": True,
                "expiration_date": expires,
                "is_sandbox": True,
            },
        },
    }


class RevenueCatClient:
    """Read-only client for the RevenueCat REST API (purchases happen client-side)."""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("REVENUECAT_API_KEY")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get(self, path: str, extra_headers: Optional[Dict[str, str]] = None) -> Dict:
        if not self.api_key:
            raise BillingError("RevenueCat API key not configured")
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        headers.update(extra_headers or {})
        try:
            response = requests.get(f"{REVENUECAT_API_BASE}{path}", headers=headers, timeout=HTTP_TIMEOUT_SEC)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"RevenueCat request failed: {type(e).__name__}")
            raise BillingError(f"RevenueCat request failed: {type(e).__name__}") from e

    def get_subscription(self, app_user_id: str, now: Optional[datetime] = None) -> Dict:
        """Current subscription summary derived from the subscriber's entitlements."""
        now = now or datetime.utcnow()
        subscriber = self._get(f"/subscribers/{app_user_id}").get("subscriber", {})

        entitlements = {}
        for name, info in (subscriber.get("entitlements") or {}).items():
            expires = parse_timestamp(info.get("expires_date"))
            entitlements[name] = {
                "identifier": name,
                "product_identifier": info.get("product_identifier"),
                "is_active": expires is None or expires > now,
                "expiration_date": expires,
                "purchase_date": parse_timestamp(info.get("purchase_date")),
            }

        active = [e for e in entitlements.values() if e["is_active"]]
        first = active[0] if active else None
        return {
            "is_active": bool(active),
            "product_identifier": first["product_identifier"] if first else None,
            "purchase_date": first["purchase_date"] if first else None,
            "expiration_date": first["expiration_date"] if first else None,
            "will_renew": None,
            "entitlements": entitlements,
        }

    def get_offerings(self, app_user_id: str) -> List[Dict]:
        data = self._get(f"/subscribers/{app_user_id}/offerings", {"X-Platform": "stripe"})
        offerings = []
        for offering in data.get("offerings", []):
            offerings.append({
                "identifier": offering.get("identifier"),
                "server_description": offering.get("description"),
                "packages": [
                    {
                        "identifier": pkg.get("identifier"),
                        "package_type": (pkg.get("identifier") or "").replace("$rc_", "", 1).upper(),
                        "product": {"identifier": pkg.get("platform_product_identifier")},
                        "offering_identifier": offering.get("identifier"),
                    }
                    for pkg in offering.get("packages", [])
                ],
            })
        return offerings
