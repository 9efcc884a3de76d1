# common/audit_client.py
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx


class AuditClient:
    """
    Лёгкий клиент для отправки событий в audit-сервис.
    Ошибки при отправке глушатся — не должны ломать основной сервис.
    Без base_url клиент ничего не отправляет.
    """

    def __init__(
        self,
        service_name: str,
        base_url: Optional[str] = None,
        timeout: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.service_name = service_name
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def build_event(
        self,
        level: str,
        message: str,
        *,
        trace_id: Optional[str] = None,
        task_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "level": level.upper(),
            "message": message,
            "trace_id": trace_id,
            "task_id": task_id,
            "context": context or {},
        }

    async def log(
        self,
        level: str,
        message: str,
        *,
        trace_id: Optional[str] = None,
        task_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self.enabled:
            return

        payload = self.build_event(
            level,
            message,
            trace_id=trace_id,
            task_id=task_id,
            context=context,
        )

        try:
            client = await self._get_client()
            await client.post("/audit/log", json=payload)
        except Exception:
            # Здесь без логгера специально — чтобы библиотека не писала сама в stdout
            pass

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
