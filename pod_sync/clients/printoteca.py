# pod_sync/clients/printoteca.py
import base64
import hashlib
import json
from typing import Any, Optional
from urllib.parse import urlencode

import requests

from ..errors import ConfigError, SupplierError, MalformedResponse
from ..models import normalize_order_list
from ..utils.logger import debug

ORDERS_PATH = "/api/orders.php"
ORDER_PATH = "/api/order.php"


def extract_error_message(r: requests.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        return (r.text or "").strip() or f"HTTP {r.status_code}"
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        if data.get("message"):
            return str(data["message"])
        err = data.get("error")
        if err:
            return err if isinstance(err, str) else json.dumps(err)
    return json.dumps(data)


class PrintotecaClient:
    """Signed access to the Printoteca order API.

    Every request carries ``AppId`` and ``Signature`` in the query string.
    The signature is base64(sha1(payload + secret)), where payload is the
    query string (everything after ``?``, before Signature) for GET/DELETE
    and the exact JSON body for POST. Nothing here retries; callers own
    retry policy.
    """

    def __init__(self, base_url: str, app_id: Optional[str], secret_key: Optional[str], timeout: int = 20):
        self.base_url = (base_url or "").rstrip("/")
        self.app_id = app_id
        self.secret_key = secret_key
        self.timeout = timeout

    def compute_signature(self, payload: str) -> str:
        if not self.secret_key:
            raise ConfigError("PRINTOTECA_SECRET_KEY not configured")
        digest = hashlib.sha1((payload + self.secret_key).encode("utf-8")).digest()
        return base64.b64encode(digest).decode()

    def _signed_query(self, params: Optional[dict] = None) -> str:
        if not self.app_id:
            raise ConfigError("PRINTOTECA_APP_ID not configured")
        query = urlencode({"AppId": self.app_id, **(params or {})})
        return f"{query}&{urlencode({'Signature': self.compute_signature(query)})}"

    def _send(self, method: str, path: str, url: str, **kwargs) -> Any:
        try:
            r = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise SupplierError(f"{method} {path} request failed: {e}") from e
        if r.status_code >= 400:
            raise SupplierError(extract_error_message(r), r.status_code)
        try:
            data = r.json()
        except ValueError as e:
            raise MalformedResponse(f"{method} {path} returned non-JSON body: {r.text[:300]}", r.status_code) from e
        # the API sometimes answers 200 with an error body
        if isinstance(data, dict) and data.get("error") and not data.get("id"):
            raise SupplierError(extract_error_message(r), r.status_code)
        return data

    def get(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}?{self._signed_query(params)}"
        return self._send("GET", path, url, headers={"Accept": "application/json"})

    def post(self, path: str, body: dict) -> Any:
        if not self.app_id:
            raise ConfigError("PRINTOTECA_APP_ID not configured")
        raw = json.dumps(body, separators=(",", ":"), ensure_ascii=False)
        query = urlencode({"AppId": self.app_id, "Signature": self.compute_signature(raw)})
        return self._send("POST", path, f"{self.base_url}{path}?{query}",
                          data=raw.encode("utf-8"),
                          headers={"Content-Type": "application/json", "Accept": "application/json"})

    def delete(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}?{self._signed_query(params)}"
        return self._send("DELETE", path, url, headers={"Accept": "application/json"})

    # ---- order operations ----

    def create(self, payload: dict) -> Any:
        debug(f"[printoteca] create external_id={payload.get('external_id')} items={len(payload.get('items') or [])}")
        return self.post(ORDERS_PATH, payload)

    def get_by_id(self, order_id: str | int) -> Any:
        return self.get(ORDER_PATH, {"id": order_id, "format": "json"})

    def list_orders(self, params: Optional[dict] = None) -> list[dict]:
        return normalize_order_list(self.get(ORDERS_PATH, {"format": "json", **(params or {})}))

    def delete_order(self, order_id: str | int) -> Any:
        return self.delete(ORDERS_PATH, {"id": order_id})
