"""SSE 帧解码器。

网络读到的字节块与事件边界没有任何对齐保证：一个 JSON 可能被拆到
两个块里，一个多字节 UTF-8 字符也可能跨块。解码器因此维护：

1. 增量 UTF-8 解码器（跨块字符不会丢失或损坏）；
2. 文本缓冲区：按空行切分，最后一段（可能不完整）留到下一次。

每个完整段落中以 ``data:`` 开头的行（去掉前缀并 trim 后）组成帧的 payload。
"""

import codecs
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Optional

from apeiron_core.domain.exceptions import ProtocolParseError, StreamCancelled
from apeiron_core.streaming.cancellation import CancellationHandle

DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class SSEFrame:
    """一个完整的 SSE 事件。"""

    data: str
    event: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.data == DONE_SENTINEL

    def json(self) -> Any:
        """解析 payload，非法 JSON 抛出 ProtocolParseError。"""

        try:
            return json.loads(self.data)
        except json.JSONDecodeError as e:
            raise ProtocolParseError(code="INVALID_JSON", message=str(e), payload=self.data[:200])


class SSEDecoder:
    """把任意切分的字节块还原为 SSEFrame 序列。"""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[SSEFrame]:
        """喂入一个字节块，返回其中所有已完整的帧。"""

        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def flush(self) -> List[SSEFrame]:
        """字节流结束：冲刷解码器，只返回以空行正常结束的帧。"""

        self._buffer += self._decoder.decode(b"", final=True)
        frames = self._drain()
        # 残留的不完整段落丢弃
        self._buffer = ""
        return frames

    def _drain(self) -> List[SSEFrame]:
        self._buffer = self._buffer.replace("\r\n", "\n")
        parts = self._buffer.split("\n\n")
        self._buffer = parts.pop()
        frames: List[SSEFrame] = []
        for part in parts:
            frame = parse_frame(part)
            if frame is not None:
                frames.append(frame)
        return frames


def parse_frame(block: str) -> Optional[SSEFrame]:
    """解析一个空行分隔的段落；没有 data 行时返回 None。"""

    data_lines: List[str] = []
    event: Optional[str] = None
    for raw_line in block.split("\n"):
        line = raw_line.strip()
        if line.startswith("data:"):
            data_lines.append(line[5:].strip())
        elif line.startswith("event:"):
            event = line[6:].strip()
    if not data_lines:
        return None
    return SSEFrame(data="\n".join(data_lines), event=event)


async def aiter_frames(
    chunks: AsyncIterator[bytes],
    cancellation: Optional[CancellationHandle] = None,
) -> AsyncIterator[SSEFrame]:
    """把字节块流解码为帧流。

    [DONE] 帧本身会被产出，随后停止读取。每处理完一个块、读取下一个块之前
    检查取消句柄，已取消时抛出 StreamCancelled。
    """

    decoder = SSEDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
            if frame.is_done:
                return
        if cancellation is not None and cancellation.cancelled:
            raise StreamCancelled()
    for frame in decoder.flush():
        yield frame
        if frame.is_done:
            return
