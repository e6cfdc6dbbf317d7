"""
Taskboard API Client

Typed request helper used by front ends to call the task API. The client is
constructed explicitly (no module-level instance) and accepts any
aiohttp.ClientSession-compatible object, so tests can pass a fake transport.

Author: jetgause
Created: 2025-12-11
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from taskboard_core.models import TaskFields, TaskRecord

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response or network failure"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class TaskApiClient:
    """
    Client for the owner-scoped task routes.

    Usage:
        async with TaskApiClient("http://127.0.0.1:8000") as client:
            tasks = await client.list_tasks(owner_key)
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _owner_path(self, owner_key: str, task_id: Optional[int] = None) -> str:
        path = f"/items/user/{quote(owner_key, safe='')}"
        if task_id is not None:
            path += f"/{int(task_id)}"
        return path

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a JSON request and return the decoded response body.

        Raises:
            ApiError: on non-2xx responses (status set) or connection errors
        """
        if self._session is None:
            raise RuntimeError("Client session not started. Use 'async with' or pass a session.")

        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")
        try:
            async with self._session.request(
                method,
                url,
                json=body,
                headers={'Content-Type': 'application/json'},
            ) as response:
                if response.status >= 400:
                    raise ApiError(await self._error_message(response), status=response.status)
                return await response.json()
        except aiohttp.ClientConnectionError as e:
            raise ApiError(f"Network error, check that the API is reachable at {self.base_url}: {e}")

    @staticmethod
    async def _error_message(response) -> str:
        message = f"HTTP {response.status}: {response.reason}"
        try:
            data = await response.json()
        except (aiohttp.ContentTypeError, ValueError):
            logger.debug("Error response body is not JSON")
            return message
        if isinstance(data, dict):
            if data.get('error'):
                message = data['error']
            if data.get('details'):
                message += f" - {data['details']}"
        return message

    @staticmethod
    def _payload(fields: TaskFields) -> Dict[str, Any]:
        return fields.model_dump(mode='json', by_alias=True)

    # ==================== Task Operations ====================

    async def list_tasks(self, owner_key: str) -> List[TaskRecord]:
        data = await self.request('GET', self._owner_path(owner_key))
        return [TaskRecord.model_validate(item) for item in data.get('data', [])]

    async def get_task(self, owner_key: str, task_id: int) -> TaskRecord:
        data = await self.request('GET', self._owner_path(owner_key, task_id))
        return TaskRecord.model_validate(data)

    async def create_task(self, owner_key: str, fields: TaskFields) -> TaskRecord:
        data = await self.request('POST', self._owner_path(owner_key), self._payload(fields))
        return TaskRecord.model_validate(data['data'])

    async def update_task(self, owner_key: str, task_id: int, fields: TaskFields) -> str:
        data = await self.request('PUT', self._owner_path(owner_key, task_id), self._payload(fields))
        return data.get('message', '')

    async def delete_task(self, owner_key: str, task_id: int) -> str:
        data = await self.request('DELETE', self._owner_path(owner_key, task_id))
        return data.get('message', '')

    async def toggle_task(self, owner_key: str, task_id: int) -> TaskRecord:
        data = await self.request('POST', self._owner_path(owner_key, task_id) + '/toggle')
        return TaskRecord.model_validate(data['data'])
