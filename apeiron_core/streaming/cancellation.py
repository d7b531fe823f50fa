"""协作式取消句柄。"""


class CancellationHandle:
    """每个流式任务持有一个句柄。

    适配器在每次读取下一个网络块之前检查 ``cancelled``，
    因此取消最迟在一个读取周期内生效。
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        return f"CancellationHandle(cancelled={self._cancelled})"
