"""会话状态、目标模型解析与并发任务调度。"""

from apeiron_core.session.conversation_session import ConversationSession
from apeiron_core.session.supervisor import ChatSupervisor, TaskOutcome, TurnResult
from apeiron_core.session.targets import ModelTarget, resolve_targets
from apeiron_core.session.task_registry import TaskRegistry

__all__ = [
    "ChatSupervisor",
    "ConversationSession",
    "ModelTarget",
    "TaskOutcome",
    "TaskRegistry",
    "TurnResult",
    "resolve_targets",
]
