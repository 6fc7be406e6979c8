"""
Capacitor 插件对账：只安装缺失且在 npm 注册表中存在的插件。
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from . import log
from .pipeline_utils import cmd_succeeds, run_cmd

ANDROID_HEADER = "Capacitor plugins for android:"
IOS_HEADER = "Capacitor plugins for ios:"
WEB_FOOTER = "[info] Listing plugins for web is not possible."

_PLUGIN_LINE_RE = re.compile(r"^(@?[^@\s]+)@\S+$")


def parse_cap_ls_output(text: str) -> set[str]:
    """从 `npx cap ls` 文本中提取插件名（去掉版本号）。

    形如 `@capacitor/share@7.0.1` 的行得到 `@capacitor/share`。
    """
    out: set[str] = set()
    for line in text.splitlines():
        m = _PLUGIN_LINE_RE.match(line.strip())
        if m:
            out.add(m.group(1))
    return out


def _section(text: str, header: str) -> str:
    if header not in text:
        return ""
    body = text.split(header, 1)[1]
    for end in ("[info] Found", IOS_HEADER, WEB_FOOTER):
        if end != header and end in body:
            body = body.split(end, 1)[0]
    return body


def installed_plugins(project_root: str) -> set[str]:
    """读取当前项目 android 与 ios 两端已安装的插件集合；命令失败时返回空集合。"""
    try:
        text = run_cmd(["npx", "cap", "ls"], cwd=project_root, stream=False)
    except RuntimeError as e:
        log.warn(f"failed to list installed Capacitor plugins: {e}")
        return set()
    return parse_cap_ls_output(_section(text, ANDROID_HEADER)) | parse_cap_ls_output(
        _section(text, IOS_HEADER)
    )


def install_missing_plugins(project_root: str, desired: Iterable[str]) -> list[str]:
    """安装缺失插件，返回实际安装成功的插件列表。"""
    wanted = list(dict.fromkeys(desired))
    log.step("Checking Capacitor plugins")
    log.debug(f"desired plugins: {', '.join(wanted)}")

    present = installed_plugins(project_root)
    to_install: list[str] = []
    for plugin in wanted:
        if plugin in present:
            log.debug(f"plugin already installed: {plugin}")
            continue
        if not cmd_succeeds(["npm", "view", plugin, "version"]):
            log.warn(f"plugin not found in npm registry, dropped: {plugin}")
            continue
        to_install.append(plugin)

    if not to_install:
        log.info("all desired plugins are installed")
        return []

    installed: list[str] = []
    for plugin in to_install:
        log.info(f"installing plugin: {plugin}")
        try:
            run_cmd(["npm", "install", plugin], cwd=project_root)
        except RuntimeError as e:
            log.error(f"failed to install {plugin}: {e}")
            continue
        installed.append(plugin)

    run_cmd(["npx", "cap", "sync"], cwd=project_root)
    log.info(f"installed {len(installed)} plugin(s)")
    return installed
