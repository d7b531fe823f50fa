"""SSE 解码与取消句柄。"""

from apeiron_core.streaming.cancellation import CancellationHandle
from apeiron_core.streaming.sse import DONE_SENTINEL, SSEDecoder, SSEFrame, aiter_frames

__all__ = ["CancellationHandle", "DONE_SENTINEL", "SSEDecoder", "SSEFrame", "aiter_frames"]
