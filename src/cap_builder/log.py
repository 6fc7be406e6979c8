"""
统一的控制台输出。

所有步骤提示走 stdout，警告与错误走 stderr，`--verbose` 时额外输出调试信息与执行的命令。
"""

from __future__ import annotations

import sys

PREFIX = "[cap-builder]"

_verbose = False


def set_verbose(enabled: bool) -> None:
    """开启或关闭调试输出。"""
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def step(message: str) -> None:
    """输出简洁的流程阶段提示。"""
    print(f"{PREFIX} {message}")


def info(message: str) -> None:
    print(f"{PREFIX}   -> {message}")


def debug(message: str) -> None:
    if _verbose:
        print(f"{PREFIX}   .. {message}")


def warn(message: str) -> None:
    print(f"{PREFIX} warning: {message}", file=sys.stderr)


def error(message: str) -> None:
    print(f"{PREFIX} error: {message}", file=sys.stderr)
