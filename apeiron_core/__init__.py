"""Apeiron Core 顶层包。

该包提供多模型流式对话的核心实现：SSE 解码、三种 Provider 协议适配、
引用合并、按模型隔离的上下文构建，以及可取消的并发任务调度。
"""

from apeiron_core.session import ChatSupervisor, ConversationSession, resolve_targets

__all__ = ["ChatSupervisor", "ConversationSession", "resolve_targets"]
