from __future__ import annotations

"""
流程通用工具：外部命令执行。

`npx` / `npm` / `pod` / `xcodebuild` / `security` 的调用都收敛到这里，便于测试时整体替换。
"""

import os
import subprocess

from . import log


def _format_cmd(cmd: list[str], cwd: str | None) -> str:
    if cwd:
        return f"+ (cd {cwd}) {' '.join(cmd)}"
    return f"+ {' '.join(cmd)}"


def run_cmd(
    cmd: list[str],
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    stream: bool = True,
) -> str:
    """执行外部命令，失败时抛出带 stderr 的异常；返回 stdout 文本。

    `stream=True` 时子进程直接继承终端输出（构建工具的进度信息需要实时可见），
    此时返回空字符串。
    """
    log.debug(_format_cmd(cmd, cwd))
    full_env = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)
    if stream:
        p = subprocess.run(cmd, cwd=cwd, env=full_env, check=False)
        if p.returncode != 0:
            raise RuntimeError(f"Command failed ({p.returncode}): {' '.join(cmd)}")
        return ""

    p = subprocess.run(
        cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, cwd=cwd, env=full_env, check=False
    )
    if p.returncode != 0:
        raise RuntimeError(f"Command failed: {' '.join(cmd)}\n{p.stderr.decode(errors='replace')}")
    return p.stdout.decode(errors="replace")


def cmd_succeeds(cmd: list[str], *, cwd: str | None = None) -> bool:
    """执行命令并仅关心是否成功（输出全部丢弃）。"""
    log.debug(_format_cmd(cmd, cwd))
    p = subprocess.run(
        cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, cwd=cwd, check=False
    )
    return p.returncode == 0
