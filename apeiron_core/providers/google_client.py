"""Google Gemini streamGenerateContent 适配器。

- URL: {base_url}/models/{model}:streamGenerateContent?alt=sse&key=<api_key>
- 系统提示词放在 systemInstruction；assistant 角色改名为 model。
- 只发送纯文本。
"""

from typing import Any, Dict, List

from apeiron_core.domain.events import NormalizedEvent, TokenDelta
from apeiron_core.infrastructure.logging.logger import logger
from apeiron_core.providers.base import PreparedRequest, SSEStreamClient, StreamRequest, first


class GoogleClient(SSEStreamClient):
    name = "google"

    def _build_request(self, req: StreamRequest) -> PreparedRequest:
        if req.plugins:
            logger.debug("Plugins are not supported by google, ignored", extra={"extra": {"model": req.model}})
        payload: Dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m.role == "assistant" else "user",
                    "parts": [{"text": m.content}],
                }
                for m in req.messages
            ],
        }
        if req.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": req.system_prompt}]}
        return PreparedRequest(
            url=f"{self.base_url}/models/{req.model}:streamGenerateContent",
            json=payload,
            params={"alt": "sse", "key": req.api_key},
        )

    def _parse_payload(self, data: Dict[str, Any], req: StreamRequest) -> List[NormalizedEvent]:
        content = first(data.get("candidates")).get("content")
        if not isinstance(content, dict):
            return []
        text = first(content.get("parts")).get("text")
        if isinstance(text, str) and text:
            return [TokenDelta(text=text)]
        return []
