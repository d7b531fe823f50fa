"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
优先级：初始化参数 > 环境变量 > .env > config.yaml。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("APEIRON_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Provider 密钥 ----
    openrouter_api_key: Optional[str] = Field(default=None, description="OpenRouter API 密钥")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API 密钥")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API 密钥")
    google_api_key: Optional[str] = Field(default=None, description="Google Gemini API 密钥")
    mistral_api_key: Optional[str] = Field(default=None, description="Mistral API 密钥")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API 密钥")
    base_url_overrides: Dict[str, str] = Field(
        default_factory=dict,
        description="按 provider id 覆盖 API 基础URL，例如自建代理",
    )

    # ---- 对话 ----
    system_prompt: str = Field(default="", description="全局系统提示词，为空则不发送")
    enabled_models: Optional[List[str]] = Field(
        default=None,
        description="启用的模型 id 列表，为空表示全部启用",
    )
    custom_models: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="用户自定义模型（id/label/provider_id/supports_images）",
    )
    web_search_enabled: bool = Field(default=False, description="是否为支持的 Provider 启用联网搜索插件")

    # ---- Provider 协议参数 ----
    anthropic_version: str = Field(default="2023-06-01", description="anthropic-version 请求头")
    anthropic_max_tokens: int = Field(default=1024, ge=1, description="Anthropic 单次回复最大 token 数")
    connect_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 连接超时（秒），读取不设超时")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator(
        "openrouter_api_key",
        "openai_api_key",
        "anthropic_api_key",
        "google_api_key",
        "mistral_api_key",
        "deepseek_api_key",
    )
    @classmethod
    def strip_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )

    def api_key_for(self, provider_id: str) -> str:
        """返回某 Provider 的密钥，未配置时返回空串。"""

        return getattr(self, f"{provider_id.lower()}_api_key", None) or ""

    def base_url_for(self, provider_id: str) -> Optional[str]:
        return self.base_url_overrides.get(provider_id)


settings = Settings()
