"""进行中流式任务的取消句柄登记表。

由 ConversationSession 持有：任务开始时登记，结束时移除。
"""

from typing import Dict, List

from apeiron_core.streaming.cancellation import CancellationHandle


class TaskRegistry:
    def __init__(self) -> None:
        self._handles: Dict[str, CancellationHandle] = {}

    def register(self, message_id: str) -> CancellationHandle:
        handle = CancellationHandle()
        self._handles[message_id] = handle
        return handle

    def discard(self, message_id: str) -> None:
        self._handles.pop(message_id, None)

    def cancel(self, message_id: str) -> bool:
        handle = self._handles.get(message_id)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """取消全部句柄并清空登记表，返回取消的数量。"""

        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel()
        return len(handles)

    @property
    def active_ids(self) -> List[str]:
        return list(self._handles)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)
