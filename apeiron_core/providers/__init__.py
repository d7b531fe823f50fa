"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口与公共 SSE 流式实现 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供各协议族的具体实现 (openai_client、anthropic_client、google_client)。
"""

from typing import Dict, Optional, Type

import httpx

from apeiron_core.config.settings import settings
from apeiron_core.providers.anthropic_client import AnthropicClient
from apeiron_core.providers.base import ProviderClient, SSEStreamClient, StreamRequest
from apeiron_core.providers.google_client import GoogleClient
from apeiron_core.providers.openai_client import OpenAICompatibleClient
from apeiron_core.providers.registry import get_provider_config

# 协议族 -> 适配器类；新增协议族只需在此登记
CLIENT_FAMILIES: Dict[str, Type[SSEStreamClient]] = {
    "openai": OpenAICompatibleClient,
    "anthropic": AnthropicClient,
    "google": GoogleClient,
}


def create_provider(
    provider_id: str,
    cfg=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderClient:
    """根据 provider id 创建对应协议族的客户端实例。"""

    provider = get_provider_config(provider_id)
    client_cls = CLIENT_FAMILIES[provider.family]
    return client_cls(provider, cfg if cfg is not None else settings, transport=transport)


__all__ = [
    "AnthropicClient",
    "CLIENT_FAMILIES",
    "GoogleClient",
    "OpenAICompatibleClient",
    "ProviderClient",
    "StreamRequest",
    "create_provider",
]
