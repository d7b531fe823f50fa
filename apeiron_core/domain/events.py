"""协议无关的流式事件。

三种 Provider 的 SSE 方言都被适配器翻译为以下四类事件，
Supervisor 只认识这些类型。
"""

from dataclasses import dataclass
from typing import List, Union

from .models import Citation


@dataclass(frozen=True)
class TokenDelta:
    """一段增量文本。"""

    text: str


@dataclass(frozen=True)
class ImageEmitted:
    """模型输出的一张图片。"""

    url: str


@dataclass(frozen=True)
class CitationBatch:
    """一次观察到的引用列表（尚未与消息已有引用合并）。"""

    citations: List[Citation]


@dataclass(frozen=True)
class StreamEnd:
    """流正常结束。reason: "done"（收到 [DONE]）或 "eof"（连接关闭）。"""

    reason: str = "eof"


NormalizedEvent = Union[TokenDelta, ImageEmitted, CitationBatch, StreamEnd]
