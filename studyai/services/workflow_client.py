"""
Signed JSON calls to external workflow endpoints
"""
import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from studyai.exceptions import DownstreamError
from studyai.utils.security import SIGNATURE_HEADER, compute_signature

logger = logging.getLogger(__name__)


class WorkflowClient:
    """
    POSTs JSON payloads, signing the exact body bytes when a secret is set
    """

    def __init__(self, http_client: httpx.AsyncClient, secret: Optional[str] = None):
        self.http_client = http_client
        self.secret = secret

    def build_request(self, payload: Dict[str, Any]) -> Tuple[bytes, Dict[str, str]]:
        """Serialize the payload and compute headers for it"""
        body = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers[SIGNATURE_HEADER] = compute_signature(body, self.secret)
        return body, headers

    async def post(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        """
        POST a payload and require a 2xx status

        Raises:
            DownstreamError: transport failure or non-success status
        """
        body, headers = self.build_request(payload)

        try:
            response = await self.http_client.post(url, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise DownstreamError(f"Workflow request to {url} failed: {e}") from e

        if response.is_error:
            logger.error(f"Workflow {url} returned {response.status_code}: {response.text[:500]}")
            raise DownstreamError(f"Workflow request failed with status {response.status_code}")

        return response

    async def post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        """POST a payload and decode the JSON reply"""
        response = await self.post(url, payload)
        try:
            return response.json()
        except ValueError as e:
            raise DownstreamError(f"Workflow {url} returned invalid JSON") from e
