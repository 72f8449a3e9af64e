from dataclasses import dataclass
from typing import Any, Mapping

import httpx


class APIError(RuntimeError):
    """Error raised for failed calls against the ticket API."""

    def __init__(self, message: str, *, status_code: int | None = None, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code is not None else ""
        return f"{prefix}{super().__str__()}"


def _extract_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown server error"

    if isinstance(data, Mapping):
        error = data.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return "Request failed"


@dataclass(slots=True)
class TicketsAPIClient:
    """Thin synchronous client for the ticket report API."""

    base_url: str
    token: str | None = None
    timeout: float = 10.0

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._build_url(path)
        headers: dict[str, str] = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        headers.update(kwargs.pop("headers", {}))

        try:
            response = httpx.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except httpx.HTTPError as exc:  # pragma: no cover - network failures are exercised manually
            raise APIError(f"API request failed: {exc}") from exc

        if response.status_code >= 400:
            message = _extract_error_message(response)
            raise APIError(message, status_code=response.status_code, response=response)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _build_url(self, path: str) -> str:
        normalized = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url.rstrip('/')}{normalized}"

    def health(self) -> Mapping[str, Any]:
        return self._request("GET", "/health")

    # Authentication
    def register(self, *, email: str, name: str, password: str) -> Mapping[str, Any]:
        payload = {"email": email, "name": name, "password": password}
        return self._request("POST", "/auth/register", json=payload)

    def login(self, *, email: str, password: str) -> Mapping[str, Any]:
        payload = {"email": email, "password": password}
        return self._request("POST", "/auth/login", json=payload)

    def me(self) -> Mapping[str, Any]:
        return self._request("GET", "/auth/me")["user"]

    # Users
    def list_users(self) -> list[Mapping[str, Any]]:
        return list(self._request("GET", "/users")["users"])

    def get_user(self, user_id: str) -> Mapping[str, Any]:
        return self._request("GET", f"/users/{user_id}")["user"]

    # Categories
    def list_categories(self) -> list[Mapping[str, Any]]:
        return list(self._request("GET", "/categories")["categories"])

    def create_category(self, *, name: str, description: str | None = None, color: str | None = None) -> Mapping[str, Any]:
        payload: dict[str, Any] = {"name": name}
        if description is not None:
            payload["description"] = description
        if color is not None:
            payload["color"] = color
        return self._request("POST", "/categories", json=payload)["category"]

    def update_category(self, category_id: str, **changes: Any) -> Mapping[str, Any]:
        return self._request("PUT", f"/categories/{category_id}", json=changes)["category"]

    def delete_category(self, category_id: str) -> None:
        self._request("DELETE", f"/categories/{category_id}")

    # Tickets
    def list_tickets(self) -> list[Mapping[str, Any]]:
        return list(self._request("GET", "/tickets")["tickets"])

    def create_ticket(
        self,
        *,
        title: str,
        description: str,
        priority: str = "medium",
        category_id: str | None = None,
    ) -> Mapping[str, Any]:
        payload: dict[str, Any] = {"title": title, "description": description, "priority": priority}
        if category_id:
            payload["categoryId"] = category_id
        return self._request("POST", "/tickets", json=payload)["ticket"]

    def get_ticket(self, ticket_id: str) -> Mapping[str, Any]:
        return self._request("GET", f"/tickets/{ticket_id}")["ticket"]

    def update_ticket(self, ticket_id: str, changes: Mapping[str, Any]) -> Mapping[str, Any]:
        """Send a partial update; keys are the camelCase field names of the API."""

        return self._request("PUT", f"/tickets/{ticket_id}", json=dict(changes))["ticket"]

    def delete_ticket(self, ticket_id: str) -> None:
        self._request("DELETE", f"/tickets/{ticket_id}")

    def get_timeline(self, ticket_id: str) -> list[Mapping[str, Any]]:
        return list(self._request("GET", f"/tickets/{ticket_id}/timeline")["timeline"])
