"""并发流式任务调度。

每个用户轮次：
1. 追加用户消息；
2. 为每个目标模型同步创建一条流式中的助手消息并登记取消句柄；
3. 为每个目标模型启动一个独立的 asyncio 任务：构建上下文 -> 调用适配器 ->
   把每个事件交给会话的单写者更新通道；
4. 所有任务结束后本轮才算完成。

失败分类：
- 取消（StreamCancelled / 外部 CancelledError）：消息停止流式，内容保持不变。
- BusinessError（ConfigurationError、TransportError 等）与其他异常：
  消息内容替换为 ``Error: <描述>``。
任何一个任务的失败都不会影响同一轮的其他任务。
"""

import asyncio
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional

from apeiron_core.config.settings import settings as default_settings
from apeiron_core.domain.context import build_context
from apeiron_core.domain.exceptions import BusinessError, StreamCancelled, ValidationError
from apeiron_core.domain.models import Attachment, Message
from apeiron_core.domain.reducer import fail_message, finish_streaming
from apeiron_core.infrastructure.logging.logger import logger
from apeiron_core.providers import create_provider
from apeiron_core.providers.base import ProviderClient, StreamRequest
from apeiron_core.providers.registry import provider_supports_plugins, request_model_name
from apeiron_core.session.conversation_session import ConversationSession
from apeiron_core.session.targets import ModelTarget
from apeiron_core.streaming.cancellation import CancellationHandle

TaskStatus = Literal["completed", "cancelled", "failed"]

WEB_SEARCH_PLUGIN = {"id": "web"}


@dataclass
class TaskOutcome:
    """单个流式任务的结束状态。"""

    message_id: str
    model_id: str
    provider_id: str
    status: TaskStatus
    error: Optional[str] = None


@dataclass
class TurnResult:
    """一轮对话的结果：用户消息与每个模型任务的结局。"""

    user_message: Message
    outcomes: List[TaskOutcome] = field(default_factory=list)

    @property
    def assistant_message_ids(self) -> List[str]:
        return [o.message_id for o in self.outcomes]


ClientFactory = Callable[..., ProviderClient]


class ChatSupervisor:
    def __init__(self, cfg=default_settings, client_factory: ClientFactory = create_provider):
        self._settings = cfg
        self._client_factory = client_factory

    async def send_message(
        self,
        session: ConversationSession,
        text: str,
        targets: List[ModelTarget],
        attachments: Optional[List[Attachment]] = None,
        *,
        web_search: Optional[bool] = None,
        system_prompt: Optional[str] = None,
    ) -> TurnResult:
        """发送一条用户消息并等待所有目标模型的任务结束。

        Args:
            session: 目标会话
            text: 用户输入
            targets: 本轮目标模型（单模型模式只有一个）
            attachments: 本轮附件（可选）
            web_search: 是否启用联网搜索，默认取配置
            system_prompt: 系统提示词，默认取配置

        Returns:
            TurnResult

        Raises:
            ValidationError: 输入为空或没有目标模型
        """

        text = text.strip()
        if not text and not attachments:
            raise ValidationError(code="EMPTY_MESSAGE", message="Message is empty")
        if not targets:
            raise ValidationError(code="NO_TARGET_MODELS", message="No model with a configured API key selected")
        if web_search is None:
            web_search = getattr(self._settings, "web_search_enabled", False)
        if system_prompt is None:
            system_prompt = getattr(self._settings, "system_prompt", "") or None

        base_messages = list(session.conversation.messages)
        user_message = await session.append_user_message(text, attachments)
        history = [*base_messages, user_message]

        started: List[tuple[Message, ModelTarget, CancellationHandle]] = []
        for target in targets:
            assistant = Message.assistant_placeholder(target.model.id, target.model.provider_id)
            handle = session.tasks.register(assistant.id)
            await session.append_message(assistant)
            started.append((assistant, target, handle))

        tasks = [
            asyncio.create_task(
                self._run_task(session, assistant.id, target, history, handle, system_prompt, bool(web_search))
            )
            for assistant, target, handle in started
        ]
        outcomes = await asyncio.gather(*tasks)
        return TurnResult(user_message=user_message, outcomes=list(outcomes))

    async def stop(self, session: ConversationSession) -> int:
        return await session.stop()

    async def _run_task(
        self,
        session: ConversationSession,
        message_id: str,
        target: ModelTarget,
        history: List[Message],
        handle: CancellationHandle,
        system_prompt: Optional[str],
        web_search: bool,
    ) -> TaskOutcome:
        model = target.model
        log_ctx = {
            "conversation_id": session.conversation.id,
            "message_id": message_id,
            "model": model.id,
            "provider": model.provider_id,
        }
        start_time = time.time()
        logger.info("Stream task started", extra={"extra": log_ctx})

        def outcome(status: TaskStatus, error: Optional[str] = None) -> TaskOutcome:
            logger.info(
                f"Stream task {status}",
                extra={"extra": {**log_ctx, "status": status, "elapsed": round(time.time() - start_time, 3)}},
            )
            return TaskOutcome(message_id, model.id, model.provider_id, status, error)

        try:
            context = build_context(history, model.id, model.provider_id)
            plugins = [dict(WEB_SEARCH_PLUGIN)] if web_search and provider_supports_plugins(model.provider_id) else None
            req = StreamRequest(
                api_key=target.api_key,
                model=request_model_name(model),
                messages=context,
                system_prompt=system_prompt,
                supports_images=model.supports_images,
                plugins=plugins,
                cancellation=handle,
            )
            client = self._client_factory(model.provider_id, self._settings)
            async with aclosing(client.stream(req)) as events:
                async for event in events:
                    if handle.cancelled:
                        raise StreamCancelled()
                    await session.apply_event(message_id, event)
        except StreamCancelled:
            await session.update_message(message_id, finish_streaming)
            return outcome("cancelled")
        except asyncio.CancelledError:
            handle.cancel()
            await session.update_message(message_id, finish_streaming)
            outcome("cancelled")
            raise
        except BusinessError as e:
            if handle.cancelled:
                await session.update_message(message_id, finish_streaming)
                return outcome("cancelled")
            logger.warning(
                "Stream task error",
                extra={"extra": {**log_ctx, "code": e.code, "error": e.message}},
            )
            await session.update_message(message_id, lambda m: fail_message(m, e.message))
            return outcome("failed", e.message)
        except Exception as e:  # noqa: BLE001 - 单个任务失败不能影响其他任务
            if handle.cancelled:
                await session.update_message(message_id, finish_streaming)
                return outcome("cancelled")
            logger.exception("Stream task crashed", extra={"extra": log_ctx})
            description = str(e) or type(e).__name__
            await session.update_message(message_id, lambda m: fail_message(m, description))
            return outcome("failed", description)
        finally:
            session.tasks.discard(message_id)

        await session.update_message(message_id, finish_streaming)
        return outcome("completed")
