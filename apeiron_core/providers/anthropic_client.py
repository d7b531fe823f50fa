"""Anthropic Messages API 适配器。

- URL: {base_url}/messages
- 认证: x-api-key + anthropic-version 请求头
- 系统提示词放在顶层 system 字段；只发送纯文本。

只有 type == content_block_delta 的事件携带文本（delta.text）；
服务端在流中返回 type == error 时视为传输错误。
"""

from typing import Any, Dict, List

from apeiron_core.domain.events import NormalizedEvent, TokenDelta
from apeiron_core.domain.exceptions import TransportError
from apeiron_core.infrastructure.logging.logger import logger
from apeiron_core.providers.base import PreparedRequest, SSEStreamClient, StreamRequest


class AnthropicClient(SSEStreamClient):
    name = "anthropic"

    def _build_request(self, req: StreamRequest) -> PreparedRequest:
        if req.plugins:
            logger.debug("Plugins are not supported by anthropic, ignored", extra={"extra": {"model": req.model}})
        payload: Dict[str, Any] = {
            "model": req.model,
            "max_tokens": getattr(self._settings, "anthropic_max_tokens", 1024),
            "messages": [{"role": m.role, "content": m.content} for m in req.messages],
            "stream": True,
        }
        if req.system_prompt:
            payload["system"] = req.system_prompt
        return PreparedRequest(
            url=f"{self.base_url}/messages",
            json=payload,
            headers={
                "x-api-key": req.api_key,
                "anthropic-version": getattr(self._settings, "anthropic_version", "2023-06-01"),
            },
        )

    def _parse_payload(self, data: Dict[str, Any], req: StreamRequest) -> List[NormalizedEvent]:
        event_type = data.get("type")
        if event_type == "content_block_delta":
            delta = data.get("delta") or {}
            text = delta.get("text") if isinstance(delta, dict) else None
            if isinstance(text, str) and text:
                return [TokenDelta(text=text)]
        elif event_type == "error":
            error = data.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else None
            raise TransportError(code="STREAM_ERROR", message=message or "Stream error", http_status=502)
        return []
