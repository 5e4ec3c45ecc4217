"""Ports the receipt pipeline depends on, plus their Supabase-backed adapters."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Protocol

from supabase import AsyncClient

from paragoniusz.services.ai.receipt_extract.service import ReceiptExtractionService

logger = logging.getLogger(__name__)


class ConsentStore(Protocol):
    async def get(self, user_id: str) -> dict[str, Any]: ...


class CategoryStore(Protocol):
    async def list_all(self) -> list[dict[str, Any]]: ...


class ReceiptExtractionFunction(Protocol):
    async def invoke(self, payload: dict[str, Any], auth_token: Optional[str] = None) -> Any: ...


class SupabaseConsentStore:
    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def get(self, user_id: str) -> dict[str, Any]:
        response = await (
            self._client.table("profiles").select("ai_consent_given").eq("id", user_id).single().execute()
        )
        return response.data or {}


class SupabaseCategoryStore:
    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def list_all(self) -> list[dict[str, Any]]:
        response = await self._client.table("categories").select("id, name").execute()
        return list(response.data or [])


class SupabaseReceiptImageStore:
    def __init__(self, client: AsyncClient, bucket: str = "receipts") -> None:
        self._client = client
        self._bucket = bucket

    async def download(self, path: str) -> bytes:
        return await self._client.storage.from_(self._bucket).download(path)

    async def remove(self, path: str) -> None:
        await self._client.storage.from_(self._bucket).remove([path])


class SupabaseEdgeFunction:
    """Invokes a deployed Edge Function; non-2xx responses raise with the function's error text."""

    def __init__(self, client: AsyncClient, name: str = "process-receipt") -> None:
        self._client = client
        self._name = name

    async def invoke(self, payload: dict[str, Any], auth_token: Optional[str] = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        data = await self._client.functions.invoke(
            self._name,
            invoke_options={"body": payload, "headers": headers, "responseType": "json"},
        )
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        if isinstance(data, str):
            data = json.loads(data) if data.strip() else None
        return data


class LocalReceiptFunction:
    """Runs the extraction in-process with the same contract as the Edge Function."""

    def __init__(self, extractor: ReceiptExtractionService) -> None:
        self._extractor = extractor

    async def invoke(self, payload: dict[str, Any], auth_token: Optional[str] = None) -> Any:
        return await self._extractor.extract(payload.get("file_path", ""))
