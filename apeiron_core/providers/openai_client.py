"""OpenAI 兼容协议族适配器（OpenRouter / OpenAI / Mistral / DeepSeek）。

- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>
- 系统提示词作为首条 system 消息。
- 附件：图片走 image_url 分片，其他文件解码后以 ``[File: name]`` 文本分片内联。

流式响应中除文本增量外，还可能携带图片（图片模型）与引用
（联网搜索插件）。引用的位置在不同服务端之间并不统一，
这里依次探测 delta.annotations、message.annotations、
message.content[0].annotations，取第一个存在的。
"""

from typing import Any, Dict, List

from apeiron_core.domain.citations import extract_citations
from apeiron_core.domain.events import CitationBatch, ImageEmitted, NormalizedEvent, TokenDelta
from apeiron_core.domain.models import Message
from apeiron_core.infrastructure.logging.logger import logger
from apeiron_core.providers.base import PreparedRequest, SSEStreamClient, StreamRequest, first


class OpenAICompatibleClient(SSEStreamClient):
    """OpenAI 兼容 chat/completions 流式客户端。"""

    name = "openai"

    def _build_request(self, req: StreamRequest) -> PreparedRequest:
        messages: List[Dict[str, Any]] = []
        if req.system_prompt:
            messages.append({"role": "system", "content": req.system_prompt})
        messages.extend(self._message_to_payload(m) for m in req.messages)
        payload: Dict[str, Any] = {
            "model": req.model,
            "messages": messages,
            "stream": True,
        }
        if req.supports_images:
            payload["modalities"] = ["text", "image"]
        if req.plugins:
            payload["plugins"] = req.plugins
        return PreparedRequest(
            url=f"{self.base_url}/chat/completions",
            json=payload,
            headers={"Authorization": f"Bearer {req.api_key}"},
        )

    def _message_to_payload(self, message: Message) -> Dict[str, Any]:
        if not message.attachments:
            return {"role": message.role, "content": message.content}
        parts: List[Dict[str, Any]] = []
        if message.content:
            parts.append({"type": "text", "text": message.content})
        for att in message.attachments:
            if att.is_image:
                parts.append({"type": "image_url", "image_url": {"url": att.content}})
            else:
                parts.append({"type": "text", "text": f"[File: {att.name}]\n{att.decoded_text()}"})
        return {"role": message.role, "content": parts}

    def _parse_payload(self, data: Dict[str, Any], req: StreamRequest) -> List[NormalizedEvent]:
        """解析流式响应中的单条增量。"""

        choice = first(data.get("choices"))
        delta = choice.get("delta") if isinstance(choice.get("delta"), dict) else {}
        message = choice.get("message") if isinstance(choice.get("message"), dict) else {}
        events: List[NormalizedEvent] = []

        content = delta.get("content")
        if isinstance(content, str) and content:
            events.append(TokenDelta(text=content))

        annotations = self._probe_annotations(delta, message)
        if annotations is not None:
            citations = extract_citations(annotations)
            if citations:
                events.append(CitationBatch(citations=citations))
            else:
                logger.debug(
                    "Annotations without usable url",
                    extra={"extra": {"provider": self.provider.id, "model": req.model}},
                )

        images = delta.get("images")
        if images is None:
            images = message.get("images")
        if isinstance(images, list):
            for img in images:
                url = self._image_url(img)
                if url:
                    events.append(ImageEmitted(url=url))
        return events

    @staticmethod
    def _probe_annotations(delta: Dict[str, Any], message: Dict[str, Any]) -> Any:
        if delta.get("annotations") is not None:
            return delta["annotations"]
        if message.get("annotations") is not None:
            return message["annotations"]
        msg_content = message.get("content")
        if isinstance(msg_content, list):
            return first(msg_content).get("annotations")
        return None

    @staticmethod
    def _image_url(img: Any) -> str:
        if not isinstance(img, dict):
            return ""
        image_url = img.get("image_url")
        if isinstance(image_url, dict) and isinstance(image_url.get("url"), str):
            return image_url["url"]
        url = img.get("url")
        return url if isinstance(url, str) else ""
