"""REST client for the bot-flow backend."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from botflow.config import Config
from botflow.core.ir import BotFlow, FlowNode
from botflow.core.serialization import JsonSerializer
from botflow.exceptions import ApiError, AuthenticationError, NotFoundError, TransportError
from botflow.store import NodeStore

logger = logging.getLogger(__name__)


class FlowApiClient(NodeStore):
    """
    HTTP client for flows and flow nodes.

    Every response is wrapped in ``{"success": bool, "data": ..., "message": ...}``;
    anything other than a successful envelope is raised as an ApiError.

    Example:
        with FlowApiClient.from_config(load_config()) as client:
            nodes = client.list_nodes(flow_id)
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Config, transport: Optional[httpx.BaseTransport] = None) -> "FlowApiClient":
        return cls(config.api_base_url, token=config.api_token, timeout=config.timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FlowApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, json_data: Optional[Dict[str, Any]] = None) -> Any:
        """Make an HTTP request and unwrap the response envelope."""
        logger.debug("%s %s", method, path)
        try:
            response = self._client.request(method=method, url=path, json=json_data)
        except httpx.HTTPError as e:
            raise TransportError(f"Could not reach {self.base_url}: {e}") from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}
        message = body.get("message") if isinstance(body, dict) else None

        if response.status_code in (401, 403):
            raise AuthenticationError(message or "Authentication failed", status_code=response.status_code)
        if response.status_code == 404:
            raise NotFoundError(message or f"Not found: {path}")
        if response.status_code >= 400:
            raise ApiError(message or response.text or "Request failed", status_code=response.status_code)

        if isinstance(body, dict) and body.get("success") is False:
            raise ApiError(message or "Request failed", status_code=response.status_code)

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # --- Nodes ---

    def list_nodes(self, flow_id: str) -> List[FlowNode]:
        data = self._request("GET", f"/bot-flows/{flow_id}/nodes")
        return JsonSerializer.nodes_from_list(data or [])

    def create_node(self, flow_id: str, node: FlowNode) -> FlowNode:
        payload = JsonSerializer.node_to_dict(node)
        payload.pop("_id", None)
        data = self._request("POST", f"/bot-flows/{flow_id}/nodes", json_data=payload)
        return JsonSerializer.node_from_dict(data) if data else node

    def update_node(self, identity: str, node: FlowNode) -> FlowNode:
        payload = JsonSerializer.node_to_dict(node)
        payload["_id"] = identity
        data = self._request("PUT", f"/bot-flows/nodes/{identity}", json_data=payload)
        return JsonSerializer.node_from_dict(data) if data else node

    def delete_node(self, identity: str) -> None:
        self._request("DELETE", f"/bot-flows/nodes/{identity}")

    # --- Flows ---

    def list_flows(self, waba_account: str) -> List[BotFlow]:
        data = self._request("GET", f"/bot-flows/waba/{waba_account}")
        return [JsonSerializer.flow_from_dict(item) for item in data or []]

    def create_flow(self, name: str, waba_account: str) -> BotFlow:
        if not name.strip():
            raise ValueError("Flow name must not be empty.")
        data = self._request("POST", "/bot-flows", json_data={"name": name, "wabaAccount": waba_account})
        return JsonSerializer.flow_from_dict(data) if data else BotFlow(name=name, waba_account=waba_account)

    def update_flow(self, flow: BotFlow) -> BotFlow:
        if not flow.identity:
            raise ValueError("Cannot update a flow that has no identity.")
        data = self._request("PUT", f"/bot-flows/{flow.identity}", json_data=JsonSerializer.flow_to_dict(flow))
        return JsonSerializer.flow_from_dict(data) if data else flow

    def delete_flow(self, flow_id: str) -> None:
        """Delete a flow together with all of its nodes."""
        self._request("DELETE", f"/bot-flows/{flow_id}")
