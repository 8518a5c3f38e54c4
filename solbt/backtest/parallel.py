# solbt/backtest/parallel.py
from __future__ import annotations

import os
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Callable, Iterable

from solbt import logs


class ParallelExecutor:
    """
    ParallelExecutor

    - 统一的 ProcessPoolExecutor 封装
    - 每个 item 独立（run 之间无共享可变状态）
    - 结果顺序与 items 一致
    """

    @staticmethod
    def run(
            *,
            kind: str,
            items: Iterable[Any],
            handler: Callable[[Any], Any],
            max_workers: int | None = None,
    ) -> list[Any]:
        items = list(items)
        if not items:
            logs.info(f"[ParallelExecutor] no items to process kind={kind}")
            return []

        workers = ParallelExecutor._resolve_workers(items, max_workers)
        logs.info(
            f"[ParallelExecutor] start "
            f"kind={kind} total={len(items)} workers={workers}"
        )

        if workers == 1:
            return ParallelExecutor._run_sequential(items, handler)
        return ParallelExecutor._run_parallel(items, handler, workers)

    # ---------------- internal ----------------

    @staticmethod
    def _resolve_workers(items: list, max_workers: int | None) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return min(cpu, len(items))
        return max(1, min(max_workers, len(items)))

    @staticmethod
    def _run_sequential(
            items: list,
            handler: Callable[[Any], Any],
    ) -> list:
        return [handler(item) for item in items]

    @staticmethod
    def _run_parallel(
            items: list,
            handler: Callable[[Any], Any],
            workers: int,
    ) -> list:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(handler, item) for item in items]
            return [fut.result() for fut in futures]
