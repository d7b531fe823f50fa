"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
Supervisor 捕获后把错误文本写回对应的助手消息（``Error: ...``）。

StreamCancelled 不是错误：它表示用户主动停止，只用于在任务内部
跳出读取循环，因此不继承 BusinessError。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、model 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """配置缺失或无效，例如 Provider 没有配置 API Key。

    在发起任何网络请求之前抛出。
    """


class TransportError(BusinessError):
    """HTTP 非 2xx、响应体不可读或网络层失败。

    message 为服务端返回的错误文本（若有）。
    """


class ProtocolParseError(BusinessError):
    """单个 SSE 帧的 payload 不是合法 JSON。

    不致命：解码器记录后跳过该帧继续。
    """


class ValidationError(BusinessError):
    """参数校验失败，例如空消息或没有可用的目标模型。"""


class StreamCancelled(Exception):
    """流式任务被取消句柄终止。"""
