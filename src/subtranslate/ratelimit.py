from __future__ import annotations

import threading
import time
from typing import Any, Callable, TypeVar


T = TypeVar("T")


class RateLimiter:
    """
    进程内共享的外部调用限速器。

    - max_concurrent：同时进行中的外部调用上限；
    - min_interval：相邻两次调用的开始时间至少间隔多少秒。

    免费/限额接口对突发请求很敏感，所以字幕源与所有翻译引擎都应持有同一个实例，
    在启动时构造一次，而不是每次调用时新建。
    """

    def __init__(self, min_interval: float = 0.3, max_concurrent: int = 1) -> None:
        self.min_interval = max(0.0, float(min_interval))
        self.max_concurrent = max(1, int(max_concurrent))
        self._semaphore = threading.BoundedSemaphore(self.max_concurrent)
        self._lock = threading.Lock()
        self._next_start = 0.0

    def _wait_for_slot(self) -> None:
        # 在锁内预约下一个可用的开始时间，锁外睡眠，避免阻塞其它线程的预约
        with self._lock:
            now = time.monotonic()
            start_at = max(now, self._next_start)
            self._next_start = start_at + self.min_interval
        delay = start_at - now
        if delay > 0:
            time.sleep(delay)

    def __enter__(self) -> "RateLimiter":
        self._semaphore.acquire()
        try:
            self._wait_for_slot()
        except BaseException:
            self._semaphore.release()
            raise
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._semaphore.release()

    def schedule(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        在限速约束下执行 func，并返回其结果（异常原样抛出）。
        """
        with self:
            return func(*args, **kwargs)
