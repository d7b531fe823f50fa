"""统一的对话数据模型。

本模块定义了流式核心在各 Provider 之间共享的标准数据结构：

- Attachment: 用户消息携带的附件（data URL 形式，只读）。
- Citation: 模型检索后给出的来源引用，按 url 去重。
- Message: 一条用户或助手消息。
- Conversation: 按顺序追加的消息列表。

Provider 适配器只读取这些模型；对 Message 的修改只通过
``apeiron_core.domain.reducer`` 中的纯函数完成。
"""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Literal, Optional
from uuid import uuid4


# 消息角色（系统提示词不进入会话日志，由适配器按协议单独放置）
Role = Literal["user", "assistant"]


def new_id() -> str:
    return uuid4().hex[:8]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Attachment:
    """用户消息的附件。

    - name: 文件名。
    - mime_type: MIME 类型，如 image/png、text/plain。
    - content: data URL（``data:<mime>;base64,<payload>``）。
    """

    name: str
    mime_type: str
    content: str

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def decoded_text(self) -> str:
        """把 data URL 的 base64 部分解码为文本，非法内容返回空串。"""

        _, _, payload = self.content.partition(",")
        try:
            raw = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError):
            return ""
        return raw.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Citation:
    """来源引用，url 为主键。"""

    url: str
    title: Optional[str] = None
    content: Optional[str] = None


@dataclass
class Message:
    """一条对话消息。

    - model_id / provider_id: 仅助手消息携带，创建后不再改变。
    - is_streaming: 为 True 时 content 只会追加。
    - images: 模型输出的图片 URL。
    - sources: 去重后的引用列表。
    """

    id: str
    role: Role
    content: str = ""
    created_at: datetime = field(default_factory=utcnow)
    model_id: Optional[str] = None
    provider_id: Optional[str] = None
    is_streaming: bool = False
    images: List[str] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    sources: List[Citation] = field(default_factory=list)

    @classmethod
    def user(cls, content: str, attachments: Optional[List[Attachment]] = None) -> "Message":
        return cls(id=new_id(), role="user", content=content, attachments=list(attachments or []))

    @classmethod
    def assistant_placeholder(cls, model_id: str, provider_id: str) -> "Message":
        return cls(
            id=new_id(),
            role="assistant",
            model_id=model_id,
            provider_id=provider_id,
            is_streaming=True,
        )


@dataclass
class Conversation:
    """会话：消息只追加，不重排、不删除。"""

    id: str = field(default_factory=new_id)
    title: str = ""
    messages: List[Message] = field(default_factory=list)
    updated_at: datetime = field(default_factory=utcnow)
    project_id: Optional[str] = None

    def find(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None
