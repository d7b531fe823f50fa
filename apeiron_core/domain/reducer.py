"""把流式事件应用到消息上的纯函数。

所有函数都返回新的 Message，不修改入参；并发安全由
ConversationSession 的单写者锁保证。
"""

from dataclasses import replace

from .citations import merge_citations
from .events import CitationBatch, ImageEmitted, NormalizedEvent, StreamEnd, TokenDelta
from .models import Message


def apply_event(message: Message, event: NormalizedEvent) -> Message:
    """(Message, event) -> Message。"""

    if isinstance(event, TokenDelta):
        if not event.text:
            return message
        return replace(message, content=message.content + event.text)
    if isinstance(event, ImageEmitted):
        return replace(message, images=[*message.images, event.url])
    if isinstance(event, CitationBatch):
        if not event.citations:
            return message
        return replace(message, sources=merge_citations(message.sources, event.citations))
    if isinstance(event, StreamEnd):
        return finish_streaming(message)
    raise TypeError(f"Unsupported stream event: {event!r}")


def finish_streaming(message: Message) -> Message:
    if not message.is_streaming:
        return message
    return replace(message, is_streaming=False)


def fail_message(message: Message, description: str) -> Message:
    """失败的任务：内容替换为错误文本并结束流式状态。"""

    return replace(message, content=f"Error: {description}", is_streaming=False)
