"""Notion integration for MindMesh."""

from typing import Dict, List, Optional
import requests

from mindmesh.models.constants import HTTP_TIMEOUT_SEC, NOTION_PAGE_SIZE

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"


class NotionClient:
    """Client for the Notion REST API (per-user OAuth access token)."""

    def __init__(self, access_token: str):
        if not access_token:
            raise ValueError("Notion access token is required")
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Notion-Version": NOTION_VERSION,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, json_body: Optional[Dict] = None) -> Dict:
        url = f"{NOTION_API_BASE}{path}"
        try:
            response = requests.request(method, url, headers=self.headers, json=json_body, timeout=HTTP_TIMEOUT_SEC)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise Exception(f"Notion API {method} {path} failed: {e}") from e

    def search_databases(self) -> List[Dict]:
        """List databases shared with the integration."""
        data = self._request(
            "POST",
            "/search",
            {"filter": {"property": "object", "value": "database"}},
        )
        return data.get("results", [])

    def query_database(self, database_id: str, page_size: int = NOTION_PAGE_SIZE) -> List[Dict]:
        """Return the first `page_size` pages of a database (no pagination)."""
        data = self._request("POST", f"/databases/{database_id}/query", {"page_size": page_size})
        return data.get("results", [])

    def get_page(self, page_id: str) -> Dict:
        return self._request("GET", f"/pages/{page_id}")

    def update_page_properties(self, page_id: str, properties: Dict) -> Dict:
        return self._request("PATCH", f"/pages/{page_id}", {"properties": properties})
