#!filepath: solbt/utils/logger.py
import os
import json
from functools import wraps
from time import perf_counter
from loguru import logger
from typing import Callable


class Logging:
    """
    solbt 全局日志（loguru 之上的一层薄封装）

    - 文件 sink 按天切割，enqueue=True，runner 的进程池可以安全写同一个文件
    - 主循环只打 [pnl] / [runner] 级别的 summary，不打逐分钟日志
    - apply(LogConfig) 原地重配，全局 logs 的引用不变
    """

    def __init__(
        self,
        log_dir: str = "logs",
        rotation: str = "1 day",
        retention: str = "30 days",
        log_level: str = "INFO",
    ):
        self._set(log_dir, rotation, retention, log_level)

    @classmethod
    def from_config(cls, cfg) -> "Logging":
        return cls(
            log_dir=cfg.dir,
            rotation=cfg.rotation,
            retention=cfg.retention,
            log_level=cfg.level,
        )

    def apply(self, cfg) -> "Logging":
        """用 LogConfig 重配当前实例（替换 sink）"""
        self._set(cfg.dir, cfg.rotation, cfg.retention, cfg.level)
        return self

    def _set(self, log_dir: str, rotation: str, retention: str, level: str) -> None:
        self.log_dir = log_dir
        self.rotation = rotation
        self.retention = retention
        self.level = level

        os.makedirs(self.log_dir, exist_ok=True)
        self._configure()

    def _configure(self) -> None:
        logger.remove()
        logger.add(
            sink=os.path.join(self.log_dir, "solbt_{time:YYYY-MM-DD}.log"),
            rotation=self.rotation,
            retention=self.retention,
            level=self.level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
            enqueue=True,
            backtrace=True,
            diagnose=True,
        )
        logger.debug(f"[logs] sink={self.log_dir} level={self.level}")

    def debug(self, msg: str, *args, **kwargs):
        logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        logger.exception(msg, *args, **kwargs)

    # ---------- decorators ----------
    def catch(
        self,
        msg: str = "Exception occurred",
        log_inputs: bool = False,
        log_outputs: bool = False,
        log_time: bool = True,
    ) -> Callable:

        def decorator(func: Callable):
            @wraps(func)
            def wrapper(*args, **kwargs):

                if log_inputs:
                    logger.info(
                        f"[CALL] {func.__name__} args={args}, "
                        f"kwargs={json.dumps(kwargs, ensure_ascii=False, default=str)}"
                    )

                start = perf_counter()

                try:
                    result = func(*args, **kwargs)
                except Exception:
                    logger.exception(f"[ERROR] {func.__name__}: {msg}")
                    raise  # 契约违规必须向上抛，run 要么完整要么中止

                if log_outputs:
                    logger.info(f"[RETURN] {func.__name__} result={result}")

                if log_time:
                    cost = perf_counter() - start
                    logger.info(f"[TIME] {func.__name__} took {cost:.4f}s")

                return result

            return wrapper

        return decorator

    def progress(self, task: str, total, unit="items"):
        """
        逐日循环的进度日志；被装饰函数需接收 logger 关键字参数并调用 logger.update(n)。

            @logs.progress("row-builder", total=lambda args: len(args[1]), unit="days")
            def build(self, days, minutes, logger=None): ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                computed_total = total(args) if callable(total) else total

                prog_logger = _SimpleProgressLogger(task, computed_total, unit, self)

                result = func(*args, logger=prog_logger, **kwargs)

                prog_logger.finish()
                return result
            return wrapper
        return decorator


class _SimpleProgressLogger:
    """
    轻量级进度 logger：负责 update()。
    每 10% 输出一次，避免在逐日循环里刷屏。
    """
    def __init__(self, task, total, unit, logger):
        self.task = task
        self.total = int(total)
        self.unit = unit
        self.logger = logger
        self.current = 0
        self._next_report = max(1, self.total // 10)
        self.start = perf_counter()

        logger.info(f"[{self.task}] START total={self.total} {self.unit}")

    def update(self, value):
        self.current += value
        if self.current < self._next_report and self.current < self.total:
            return
        self._next_report += max(1, self.total // 10)

        elapsed = perf_counter() - self.start
        eta = (elapsed / self.current) * (self.total - self.current) if self.current else 0

        self.logger.info(
            f"[Progress] {self.task}: "
            f"{self.current}/{self.total} {self.unit} "
            f"| elapsed={elapsed:.2f}s | ETA={eta:.2f}s"
        )

    def finish(self):
        elapsed = perf_counter() - self.start
        self.logger.info(f"[{self.task}] DONE total_time={elapsed:.2f}s")


# 全局实例；AppConfig 加载后由 logs.apply(cfg.log) 重配
logs = Logging()
