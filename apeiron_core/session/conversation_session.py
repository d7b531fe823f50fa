"""会话状态与单写者更新通道。

ConversationSession 包装外部应用持有的 Conversation：

- 所有修改都经过 ``update_message``：在一把 asyncio.Lock 内按 id
  读取 -> 调用纯函数 -> 写回，避免并发任务丢失更新。
- 每次修改后通知订阅者（外部 UI 层），订阅者拿到的是最新的 Message。
- 持有本会话的 TaskRegistry，提供单任务取消与整轮停止。
"""

import asyncio
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from apeiron_core.domain.events import NormalizedEvent
from apeiron_core.domain.models import Attachment, Conversation, Message, utcnow
from apeiron_core.domain.reducer import apply_event, finish_streaming
from apeiron_core.infrastructure.logging.logger import logger
from apeiron_core.session.task_registry import TaskRegistry

Listener = Callable[[Conversation, Message], None]

TITLE_MAX_CHARS = 40


class ConversationSession:
    def __init__(self, conversation: Optional[Conversation] = None, listeners: Iterable[Listener] = ()):
        self.conversation = conversation or Conversation()
        self.tasks = TaskRegistry()
        self._lock = asyncio.Lock()
        self._listeners: List[Listener] = list(listeners)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    @property
    def streaming_message_ids(self) -> List[str]:
        return [m.id for m in self.conversation.messages if m.is_streaming]

    async def append_message(self, message: Message) -> Message:
        async with self._lock:
            self.conversation.messages.append(message)
            self.conversation.updated_at = utcnow()
            self._notify(message)
        return message

    async def append_user_message(self, text: str, attachments: Optional[List[Attachment]] = None) -> Message:
        """追加用户消息；会话的第一条消息同时决定标题。"""

        message = Message.user(text, attachments)
        async with self._lock:
            if not self.conversation.messages and not self.conversation.title:
                self.conversation.title = text[:TITLE_MAX_CHARS]
            self.conversation.messages.append(message)
            self.conversation.updated_at = utcnow()
            self._notify(message)
        return message

    async def update_message(self, message_id: str, fn: Callable[[Message], Message]) -> Optional[Message]:
        """按 id 原子地替换一条消息，消息不存在时返回 None。"""

        async with self._lock:
            messages = self.conversation.messages
            for idx, current in enumerate(messages):
                if current.id != message_id:
                    continue
                updated = fn(current)
                if updated is current:
                    return current
                # role 与 (model_id, provider_id) 不可变
                updated = replace(
                    updated,
                    role=current.role,
                    model_id=current.model_id,
                    provider_id=current.provider_id,
                )
                messages[idx] = updated
                self.conversation.updated_at = utcnow()
                self._notify(updated)
                return updated
        logger.warning("Update for unknown message ignored", extra={"extra": {"message_id": message_id}})
        return None

    async def apply_event(self, message_id: str, event: NormalizedEvent) -> Optional[Message]:
        return await self.update_message(message_id, lambda m: apply_event(m, event))

    def cancel_task(self, message_id: str) -> bool:
        """只取消一个任务，其他任务不受影响。"""

        return self.tasks.cancel(message_id)

    async def stop(self) -> int:
        """整轮停止：取消全部进行中的任务，并结束所有流式消息（内容不变）。"""

        cancelled = self.tasks.cancel_all()
        async with self._lock:
            messages = self.conversation.messages
            for idx, message in enumerate(messages):
                if message.is_streaming:
                    messages[idx] = finish_streaming(message)
                    self._notify(messages[idx])
            self.conversation.updated_at = utcnow()
        logger.info(
            "Stopped streaming",
            extra={"extra": {"conversation_id": self.conversation.id, "cancelled": cancelled}},
        )
        return cancelled

    def _notify(self, message: Message) -> None:
        for listener in self._listeners:
            try:
                listener(self.conversation, message)
            except Exception:  # noqa: BLE001 - 订阅者异常不能中断更新通道
                logger.exception("Conversation listener failed")
