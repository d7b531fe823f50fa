"""Provider 与模型配置。

本模块把“模型 id”与“Provider 协议族”解耦：

- ProviderConfig: 某个服务商的基础 URL 与协议族（openai / anthropic / google）。
- ModelConfig: 一个可选模型，归属于某个 Provider。

多个服务商可以共用同一协议族（OpenRouter、OpenAI、Mistral、DeepSeek
都走 OpenAI 兼容的 chat/completions）。新增协议族只需新增一个适配器
并在 ``apeiron_core.providers`` 中登记。"""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional

from apeiron_core.domain.exceptions import ConfigurationError

ProviderFamily = Literal["openai", "anthropic", "google"]

OPENROUTER_PREFIX = "openrouter/"


@dataclass(frozen=True)
class ProviderConfig:
    """某个服务商的整体配置。"""

    id: str
    name: str
    family: ProviderFamily
    base_url: str
    supports_plugins: bool = False


@dataclass(frozen=True)
class ModelConfig:
    """单个可选模型。"""

    id: str
    label: str
    provider_id: str
    supports_images: bool = False
    description: Optional[str] = None


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openrouter": ProviderConfig(
        id="openrouter",
        name="OpenRouter",
        family="openai",
        base_url="https://openrouter.ai/api/v1",
        supports_plugins=True,
    ),
    "openai": ProviderConfig(id="openai", name="OpenAI", family="openai", base_url="https://api.openai.com/v1"),
    "anthropic": ProviderConfig(
        id="anthropic",
        name="Anthropic",
        family="anthropic",
        base_url="https://api.anthropic.com/v1",
    ),
    "google": ProviderConfig(
        id="google",
        name="Google",
        family="google",
        base_url="https://generativelanguage.googleapis.com/v1beta",
    ),
    "mistral": ProviderConfig(id="mistral", name="Mistral", family="openai", base_url="https://api.mistral.ai/v1"),
    "deepseek": ProviderConfig(id="deepseek", name="DeepSeek", family="openai", base_url="https://api.deepseek.com/v1"),
}


MODEL_OPTIONS: List[ModelConfig] = [
    ModelConfig("openrouter/anthropic/claude-opus-4.5", "Claude Opus 4.5", "openrouter"),
    ModelConfig("openrouter/anthropic/claude-sonnet-4.5", "Claude Sonnet 4.5", "openrouter"),
    ModelConfig("openrouter/openai/gpt-5.2-chat", "GPT-5.2 Chat", "openrouter"),
    ModelConfig("openrouter/deepseek/deepseek-r1-0528:free", "DeepSeek R1 0528 (Free)", "openrouter"),
    ModelConfig("openrouter/google/gemini-3-flash-preview", "Gemini 3 Flash (Preview)", "openrouter"),
    ModelConfig("openrouter/google/gemini-3-pro-preview", "Gemini 3 Pro (Preview)", "openrouter"),
    ModelConfig("openrouter/google/gemini-2.5-flash-image", "Gemini 2.5 Flash Image", "openrouter", supports_images=True),
    ModelConfig("openrouter/google/gemini-3-pro-image-preview", "Gemini 3 Pro Image", "openrouter", supports_images=True),
    ModelConfig("openrouter/google/nano-banana-pro", "Nano Banana Pro", "openrouter", supports_images=True),
    ModelConfig("openrouter/openai/gpt-5-image", "GPT-5 Image", "openrouter", supports_images=True),
]


def get_provider_config(provider_id: str) -> ProviderConfig:
    """根据 id 获取 ProviderConfig，名称不区分大小写。"""

    cfg = PROVIDER_REGISTRY.get(provider_id.lower())
    if cfg is None:
        raise ConfigurationError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {provider_id!r}")
    return cfg


def request_model_name(model: ModelConfig) -> str:
    """发送给服务端的模型名：OpenRouter 模型去掉路由前缀。"""

    if model.id.startswith(OPENROUTER_PREFIX):
        return model.id[len(OPENROUTER_PREFIX):]
    return model.id


def provider_supports_plugins(provider_id: str) -> bool:
    return get_provider_config(provider_id).supports_plugins


def all_models(cfg: Any) -> List[ModelConfig]:
    """内置模型加上配置中的 custom_models（按 id 去重，自定义优先）。"""

    models: Dict[str, ModelConfig] = {m.id: m for m in MODEL_OPTIONS}
    for raw in getattr(cfg, "custom_models", None) or []:
        try:
            model = ModelConfig(
                id=raw["id"],
                label=raw.get("label") or raw["id"],
                provider_id=raw["provider_id"],
                supports_images=bool(raw.get("supports_images", False)),
                description=raw.get("description"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ConfigurationError(code="INVALID_CUSTOM_MODEL", message=f"Invalid custom model {raw!r}: {e}")
        get_provider_config(model.provider_id)
        models[model.id] = model
    return list(models.values())


def available_models(cfg: Any) -> List[ModelConfig]:
    """已启用且所属 Provider 配置了密钥的模型。"""

    enabled = getattr(cfg, "enabled_models", None)
    result: List[ModelConfig] = []
    for model in all_models(cfg):
        if enabled is not None and model.id not in enabled:
            continue
        if not cfg.api_key_for(model.provider_id):
            continue
        result.append(model)
    return result


def get_model_config(model_id: str, cfg: Any = None) -> ModelConfig:
    models = all_models(cfg) if cfg is not None else MODEL_OPTIONS
    for model in models:
        if model.id == model_id:
            return model
    raise ConfigurationError(code="UNKNOWN_MODEL", message=f"Unknown model: {model_id!r}")
