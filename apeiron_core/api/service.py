"""对外 API 服务模块。

提供简化的函数接口供上层 UI / 会话层调用：
解析目标模型、运行一轮对话、把会话序列化为 JSON 友好的字典。
"""

from typing import Any, Dict, Iterable, List, Optional

from apeiron_core.config.settings import settings
from apeiron_core.domain.models import Attachment, Conversation, Message
from apeiron_core.infrastructure.logging.logger import logger
from apeiron_core.session import ChatSupervisor, ConversationSession, TurnResult, resolve_targets


_supervisor: Optional[ChatSupervisor] = None


def get_default_supervisor() -> ChatSupervisor:
    """获取默认的 ChatSupervisor 实例（单例）。"""
    global _supervisor
    if _supervisor is None:
        _supervisor = ChatSupervisor(settings)
    return _supervisor


async def run_chat_turn(
    session: ConversationSession,
    user_input: str,
    *,
    compare_mode: bool = False,
    selected_model_id: Optional[str] = None,
    compare_model_ids: Iterable[str] = (),
    attachments: Optional[List[Attachment]] = None,
    web_search: Optional[bool] = None,
) -> TurnResult:
    """运行一轮对话。

    Args:
        session: 会话
        user_input: 用户输入内容
        compare_mode: 是否对比模式
        selected_model_id: 单模型模式下的模型 id
        compare_model_ids: 对比模式下选择的模型 id
        attachments: 附件（可选）
        web_search: 是否启用联网搜索（默认取配置）

    Returns:
        TurnResult

    Raises:
        各种 domain.exceptions 中定义的异常
    """
    targets = resolve_targets(
        settings,
        compare_mode=compare_mode,
        selected_model_id=selected_model_id,
        compare_model_ids=compare_model_ids,
    )
    try:
        return await get_default_supervisor().send_message(
            session,
            user_input,
            targets,
            attachments,
            web_search=web_search,
        )
    except Exception as e:
        logger.error(f"Chat turn failed: {e}", extra={"extra": {
            "conversation_id": session.conversation.id,
            "error": str(e),
        }})
        raise


def serialize_message(m: Message) -> Dict[str, Any]:
    return {
        "id": m.id,
        "role": m.role,
        "content": m.content,
        "created_at": m.created_at.isoformat(),
        "model_id": m.model_id,
        "provider_id": m.provider_id,
        "is_streaming": m.is_streaming,
        "images": list(m.images),
        "attachments": [{"name": a.name, "mime_type": a.mime_type} for a in m.attachments],
        "sources": [{"url": s.url, "title": s.title, "content": s.content} for s in m.sources],
    }


def serialize_conversation(conv: Conversation) -> Dict[str, Any]:
    """会话转字典，供 UI 层渲染或持久化。"""
    return {
        "id": conv.id,
        "title": conv.title,
        "updated_at": conv.updated_at.isoformat(),
        "project_id": conv.project_id,
        "messages": [serialize_message(m) for m in conv.messages],
    }
