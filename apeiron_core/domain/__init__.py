"""领域层模型与纯函数。

包含：
- models: Message / Conversation / Citation / Attachment。
- events: 协议无关的流式事件。
- citations: 引用提取与合并。
- context: 按模型隔离的上下文构建。
- reducer: 事件 -> 消息状态的纯函数。
- exceptions: 业务异常类型定义。
"""
