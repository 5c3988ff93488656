# src/pets_ui_bff/api_client.py

import logging
import typing
from urllib.parse import quote

import httpx
from fastapi import Request

logger = logging.getLogger(__name__)


def _path_segment(value: typing.Union[int, str]) -> str:
    """Escapes an id so it stays a single path segment of the upstream URL."""
    segment = quote(str(value), safe="")
    if segment in (".", ".."):
        segment = segment.replace(".", "%2E")
    return segment


class UpstreamApi:
    """
    Thin async wrapper over the upstream REST API.
    Each call returns the raw httpx.Response; status handling is left to the caller.
    Network failures surface as httpx.HTTPError subclasses.
    """

    def __init__(self, base_url: str, transport: typing.Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    async def request(
            self,
            method: str,
            path: str,
            token: typing.Optional[str] = None,
            json: typing.Any = None,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(transport=self.transport) as client:
            logger.debug("UPSTREAM: %s %s", method, url)
            response = await client.request(method, url, headers=headers, json=json)
        logger.debug("UPSTREAM: %s %s -> %s", method, url, response.status_code)
        return response

    # --- Users ---

    async def login(self, credentials: dict) -> httpx.Response:
        return await self.request("POST", "/users/login", json=credentials)

    async def register(self, user_data: dict) -> httpx.Response:
        return await self.request("POST", "/users/register", json=user_data)

    async def list_users(self, token: str) -> httpx.Response:
        return await self.request("GET", "/users", token=token)

    # --- Pets ---

    async def list_pets(self, token: str) -> httpx.Response:
        return await self.request("GET", "/pets", token=token)

    async def create_pet(self, token: str, pet_data: dict) -> httpx.Response:
        return await self.request("POST", "/pets", token=token, json=pet_data)

    async def update_pet(self, token: str, pet_id: typing.Union[int, str], pet_data: dict) -> httpx.Response:
        return await self.request("PUT", f"/pets/{_path_segment(pet_id)}", token=token, json=pet_data)

    async def delete_pet(self, token: str, pet_id: typing.Union[int, str]) -> httpx.Response:
        return await self.request("DELETE", f"/pets/{_path_segment(pet_id)}", token=token)


def read_json(response: httpx.Response) -> typing.Any:
    """Decoded body, or None when the upstream sent nothing usable."""
    try:
        return response.json()
    except ValueError:
        return None


def extract_error_message(response: httpx.Response, default: str) -> str:
    data = read_json(response)
    if isinstance(data, dict):
        for key in ("error", "message"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return default


def get_upstream_api(request: Request) -> UpstreamApi:
    return UpstreamApi(request.app.state.settings.API_BASE_URL)
