"""Provider 抽象接口与公共流式实现。

上层 Supervisor 不直接依赖具体厂商的 HTTP 协议，而是依赖此协议：

- 每个协议族实现一个 ProviderClient（OpenAI 兼容 / Anthropic / Google）。
- 负责：将 StreamRequest 转成具体 API 请求，并把 SSE 帧解析为统一事件。

三个协议族的传输过程完全一致（一次 HTTPS POST + SSE 响应体），
因此公共部分放在 SSEStreamClient 中，子类只实现
``_build_request`` 与 ``_parse_payload`` 两个钩子。
"""

from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

import httpx

from apeiron_core.config.settings import settings as default_settings
from apeiron_core.domain.events import NormalizedEvent, StreamEnd
from apeiron_core.domain.exceptions import (
    ConfigurationError,
    ProtocolParseError,
    StreamCancelled,
    TransportError,
)
from apeiron_core.domain.models import Message
from apeiron_core.infrastructure.logging.logger import logger
from apeiron_core.providers.registry import ProviderConfig
from apeiron_core.streaming.cancellation import CancellationHandle
from apeiron_core.streaming.sse import SSEFrame, aiter_frames

# 成功状态但没有响应体可读
NO_BODY_STATUSES = (204, 205)


@dataclass
class StreamRequest:
    """一次流式调用的统一输入。

    - api_key: 目标 Provider 的密钥，为空时直接抛出 ConfigurationError。
    - model: 发送给服务端的模型名（已去掉路由前缀）。
    - messages: 经过 build_context 过滤后的历史消息。
    - system_prompt: 可选系统提示词，各协议族放置位置不同。
    - supports_images: 模型具备图片输出能力（仅 OpenAI 兼容族使用）。
    - plugins: 可选插件（如联网搜索），仅 OpenAI 兼容族发送。
    - cancellation: 取消句柄。
    """

    api_key: str
    model: str
    messages: List[Message]
    system_prompt: Optional[str] = None
    supports_images: bool = False
    plugins: Optional[List[Dict[str, Any]]] = None
    cancellation: CancellationHandle = field(default_factory=CancellationHandle)


@dataclass
class PreparedRequest:
    """适配器构造好的 HTTP 请求。"""

    url: str
    json: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: 协议族名称，用于日志。
    - stream(req): 异步产出 NormalizedEvent，正常结束时最后一个事件为 StreamEnd。
    """

    name: str

    def stream(self, req: StreamRequest) -> AsyncIterator[NormalizedEvent]:
        ...


class SSEStreamClient:
    """基于 httpx 的 SSE 流式客户端基类。"""

    name = "base"

    def __init__(
        self,
        provider: ProviderConfig,
        cfg=default_settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._provider = provider
        self._settings = cfg
        self._transport = transport

    @property
    def provider(self) -> ProviderConfig:
        return self._provider

    @property
    def base_url(self) -> str:
        return (self._settings.base_url_for(self._provider.id) or self._provider.base_url).rstrip("/")

    async def stream(self, req: StreamRequest) -> AsyncIterator[NormalizedEvent]:
        """执行一次流式调用，逐步 yield 统一事件。

        步骤：
        1. 校验密钥（缺失时不发起任何网络请求）。
        2. 构造请求并 POST，非 2xx 时读取错误文本抛出 TransportError；
           204/205 没有响应体，同样抛出 TransportError。
        3. 每读一个字节块前检查取消句柄；块交给 aiter_frames 切帧。
        4. 收到 [DONE] 或连接关闭时产出 StreamEnd。
        """

        if not req.api_key:
            raise ConfigurationError(
                code="MISSING_API_KEY",
                message=f"Missing API key for provider {self._provider.name}.",
                provider=self._provider.id,
            )
        prepared = self._build_request(req)
        cancel = req.cancellation
        if cancel.cancelled:
            raise StreamCancelled()
        timeout = httpx.Timeout(getattr(self._settings, "connect_timeout", 30.0), read=None)
        try:
            async with httpx.AsyncClient(timeout=timeout, trust_env=False, transport=self._transport) as client:
                async with client.stream(
                    "POST",
                    prepared.url,
                    json=prepared.json,
                    headers={"Content-Type": "application/json", **prepared.headers},
                    params=prepared.params or None,
                ) as resp:
                    if not resp.is_success:
                        await resp.aread()
                        logger.warning(
                            "Provider returned error status",
                            extra={"extra": {
                                "provider": self._provider.id,
                                "model": req.model,
                                "status": resp.status_code,
                            }},
                        )
                        raise TransportError(
                            code="API_ERROR",
                            message=resp.text or "Request failed",
                            http_status=resp.status_code,
                        )
                    if resp.status_code in NO_BODY_STATUSES:
                        raise TransportError(
                            code="EMPTY_BODY",
                            message="Request failed",
                            http_status=resp.status_code,
                        )
                    async with aclosing(aiter_frames(resp.aiter_bytes(), cancel)) as frames:
                        async for frame in frames:
                            if frame.is_done:
                                yield StreamEnd(reason="done")
                                return
                            for event in self._frame_events(frame, req):
                                yield event
                    yield StreamEnd(reason="eof")
        except httpx.RequestError as e:
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, http_status=502)

    def _frame_events(self, frame: SSEFrame, req: StreamRequest) -> List[NormalizedEvent]:
        try:
            data = frame.json()
        except ProtocolParseError as e:
            logger.debug(
                "Skipping unparsable SSE frame",
                extra={"extra": {"provider": self._provider.id, "error": e.message}},
            )
            return []
        if not isinstance(data, dict):
            return []
        return self._parse_payload(data, req)

    # ---- 子类钩子 ----

    def _build_request(self, req: StreamRequest) -> PreparedRequest:
        raise NotImplementedError

    def _parse_payload(self, data: Dict[str, Any], req: StreamRequest) -> List[NormalizedEvent]:
        raise NotImplementedError


def first(items: Any) -> Dict[str, Any]:
    """取列表第一个字典元素，不存在时返回空字典。"""

    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}
