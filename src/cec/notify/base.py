from __future__ import annotations

from typing import Any, Mapping, Protocol


class NotificationSink(Protocol):
    """
    通知接口：把一个事件 payload 交给某个渠道。

    约定：
    - notify 失败可以抛异常，由调用方（tracker / FanoutSink）捕获并记录，不做重试
    - FanoutSink 在所有子 sink 都调用过之后，以 SinkError 汇总抛出失败
    - channel() 用于日志与故障记录
    """

    def channel(self) -> str: ...

    def notify(self, payload: Mapping[str, Any]) -> None: ...


class SinkError(RuntimeError):
    """
    组合渠道中至少一个子 sink 失败；failures 为 "channel: 异常" 形式的描述。
    """

    def __init__(self, failures: list[str]) -> None:
        super().__init__("; ".join(failures))
        self.failures = tuple(failures)
