"""
Client for the remote billsplit REST API.

Each ApiClient carries its own bearer token; nothing about the logged-in
user is kept at module level.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import config
from .errors import ApiError, retry_with_backoff

logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = f"{(base_url or config.API_BASE_URL).rstrip('/')}/api/v1"
        self.token = token
        self.timeout = config.API_TIMEOUT if timeout is None else timeout
        self.max_retries = config.API_MAX_RETRIES if max_retries is None else max_retries
        self.session = session or requests.Session()

    # ---------- Plumbing ----------
    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _send(self, method: str, path: str, unwrap: bool = True, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, path)
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc.__class__.__name__)
            raise ApiError(str(exc) or "Network error") from exc

        if not response.ok:
            logger.warning("%s %s returned %s", method, path, response.status_code)
            raise ApiError.from_response(response)

        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError:
            return response.text
        # {"message", "data", "error"} envelope
        if unwrap and isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    def _request(self, method: str, path: str, **kwargs) -> Any:
        if method == "GET":
            return retry_with_backoff(
                lambda: self._send(method, path, **kwargs), max_retries=self.max_retries
            )
        return self._send(method, path, **kwargs)

    # ---------- Auth ----------
    def register(self, email: str, password: str, password_confirmation: str) -> str:
        body = self._send(
            "POST",
            "/auth/register",
            unwrap=False,
            json={"email": email, "password": password, "passwordConfirmation": password_confirmation},
        )
        return body.get("message", "") if isinstance(body, dict) else ""

    def verify_registration(self, token: str) -> Dict[str, Any]:
        return self._request("GET", "/auth/verify-registration", params={"token": token})

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/auth/login", json={"email": email, "password": password})

    def oauth_url(self, provider: str) -> str:
        return f"{self.base_url}/auth/{provider}"

    def handle_oauth_callback(self, provider: str, code: str, state: str) -> Dict[str, Any]:
        return self._request("GET", f"/auth/{provider}/callback", params={"code": code, "state": state})

    def send_password_reset(self, email: str) -> None:
        self._request("POST", "/auth/password-reset", json={"email": email})

    def reset_password(self, token: str, password: str, password_confirmation: str) -> Dict[str, Any]:
        return self._request(
            "PATCH",
            "/auth/reset-password",
            json={"token": token, "password": password, "passwordConfirmation": password_confirmation},
        )

    # ---------- Profile ----------
    def get_profile(self) -> Dict[str, Any]:
        return self._request("GET", "/profile")

    def update_name(self, name: str) -> Dict[str, Any]:
        return self._request("PATCH", "/profile", json={"name": name})

    def search_profiles(self, query: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/profiles", params={"query": query}) or []

    def associate_profile(self, real_profile_id: str, anon_profile_id: str) -> None:
        """Merge an anonymous friend's history into a real profile. Irreversible."""
        self._request(
            "POST",
            "/profile/associate",
            json={"realProfileId": real_profile_id, "anonProfileId": anon_profile_id},
        )

    # ---------- Friend requests ----------
    def send_friend_request(self, profile_id: str) -> None:
        self._request("POST", f"/profiles/{profile_id}/friend-requests")

    def get_sent_friend_requests(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/friend-requests/sent") or []

    def get_received_friend_requests(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/friend-requests/received") or []

    def cancel_sent_friend_request(self, request_id: str) -> None:
        self._request("DELETE", f"/friend-requests/sent/{request_id}")

    def ignore_received_friend_request(self, request_id: str) -> None:
        self._request("DELETE", f"/friend-requests/received/{request_id}")

    def block_received_friend_request(self, request_id: str) -> None:
        self._request("PATCH", f"/friend-requests/received/{request_id}", json={}, params={"command": "block"})

    def unblock_received_friend_request(self, request_id: str) -> None:
        self._request("PATCH", f"/friend-requests/received/{request_id}", json={}, params={"command": "unblock"})

    def accept_received_friend_request(self, request_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/friend-requests/received/{request_id}")

    # ---------- Friendships ----------
    def create_anonymous_friendship(self, name: str) -> None:
        self._request("POST", "/friendships", json={"name": name})

    def get_friendships(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/friendships") or []

    def get_friend_details(self, friend_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/friendships/{friend_id}")

    # ---------- Debts ----------
    def get_transfer_methods(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/transfer-methods") or []

    def create_debt_transaction(self, payload: Dict[str, Any]) -> None:
        self._request("POST", "/debts", json=payload)

    def get_debt_transactions(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/debts") or []

    # ---------- Group expenses ----------
    def create_draft_group_expense(self, payload: Dict[str, Any]) -> Any:
        return self._request("POST", "/group-expenses", json=payload)

    def get_created_group_expenses(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/group-expenses") or []

    def get_group_expense_details(self, expense_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/group-expenses/{expense_id}")

    def confirm_draft_group_expense(self, expense_id: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/group-expenses/{expense_id}/confirmed")

    def get_fee_calculation_methods(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/group-expenses/fee-calculation-methods") or []

    def get_expense_item_details(self, expense_id: str, item_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/group-expenses/{expense_id}/items/{item_id}")

    def add_expense_item(self, expense_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(payload, groupExpenseId=expense_id)
        return self._request("POST", f"/group-expenses/{expense_id}/items", json=body)

    def update_expense_item(self, expense_id: str, item_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(payload, id=item_id, groupExpenseId=expense_id)
        return self._request("PUT", f"/group-expenses/{expense_id}/items/{item_id}", json=body)

    def remove_expense_item(self, expense_id: str, item_id: str) -> None:
        self._request("DELETE", f"/group-expenses/{expense_id}/items/{item_id}")

    def add_other_fee(self, expense_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(payload, groupExpenseId=expense_id)
        return self._request("POST", f"/group-expenses/{expense_id}/fees", json=body)

    def update_other_fee(self, expense_id: str, fee_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(payload, id=fee_id, groupExpenseId=expense_id)
        return self._request("PUT", f"/group-expenses/{expense_id}/fees/{fee_id}", json=body)

    def remove_other_fee(self, expense_id: str, fee_id: str) -> None:
        self._request("DELETE", f"/group-expenses/{expense_id}/fees/{fee_id}")

    # ---------- Bills ----------
    def upload_bill(self, payer_profile_id: str, filename: str, stream, content_type: str) -> None:
        self._request(
            "POST",
            "/group-expenses/bills",
            data={"payerProfileId": payer_profile_id},
            files={"bill": (filename, stream, content_type)},
        )

    def get_all_created_bills(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/group-expenses/bills") or []

    def get_bill_details(self, bill_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/group-expenses/bills/{bill_id}")

    def delete_bill(self, bill_id: str) -> None:
        self._request("DELETE", f"/group-expenses/bills/{bill_id}")
