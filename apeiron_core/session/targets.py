"""目标模型解析：单模型模式 / 对比模式。"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from apeiron_core.providers.registry import ModelConfig, available_models


@dataclass(frozen=True)
class ModelTarget:
    """一个本轮要调用的模型以及解析好的密钥。"""

    model: ModelConfig
    api_key: str


def resolve_targets(
    cfg,
    *,
    compare_mode: bool = False,
    selected_model_id: Optional[str] = None,
    compare_model_ids: Iterable[str] = (),
) -> List[ModelTarget]:
    """根据模式挑选目标模型，只保留已启用且配置了密钥的模型。

    对比模式保持用户选择的顺序并去重。
    """

    by_id = {m.id: m for m in available_models(cfg)}
    if compare_mode:
        wanted = list(dict.fromkeys(compare_model_ids))
    else:
        wanted = [selected_model_id] if selected_model_id else []
    return [
        ModelTarget(model=by_id[model_id], api_key=cfg.api_key_for(by_id[model_id].provider_id))
        for model_id in wanted
        if model_id in by_id
    ]
