"""按目标模型裁剪发送给 Provider 的历史消息。"""

from typing import Iterable, List

from .models import Message


def build_context(log: Iterable[Message], model_id: str, provider_id: str) -> List[Message]:
    """保留全部用户消息，以及该 (model_id, provider_id) 自己的历史回复。

    对比模式下每个模型只能看到共享的用户轮次和自己的回答，
    看不到其他模型的回复。
    """

    return [
        m
        for m in log
        if m.role == "user"
        or (m.role == "assistant" and m.model_id == model_id and m.provider_id == provider_id)
    ]
