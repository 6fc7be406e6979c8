"""
`Info.plist` 读写与键值更新工具。

设计原则：
- 写回时保持文件原有格式（XML 或 Binary）。
- 读写失败只记录日志并返回 False，由调用方决定是否中止流程。
"""

from __future__ import annotations

import os
import plistlib
from collections.abc import Callable
from typing import Any
from xml.parsers.expat import ExpatError

from . import log


def info_plist_path(project_root: str) -> str:
    return os.path.join(project_root, "ios", "App", "App", "Info.plist")


def plist_format(path: str) -> plistlib.PlistFormat:
    """根据文件头判断 plist 是 Binary 还是 XML。"""
    with open(path, "rb") as f:
        head = f.read(8)
    return plistlib.FMT_BINARY if head.startswith(b"bplist") else plistlib.FMT_XML


def load_plist(path: str) -> Any:
    """从磁盘读取 plist（自动识别 XML/Binary）并返回对象。"""
    with open(path, "rb") as f:
        return plistlib.load(f)


def save_plist(path: str, obj: Any, fmt: plistlib.PlistFormat = plistlib.FMT_XML) -> None:
    """按指定格式将对象写回磁盘（保留键顺序）。"""
    data = plistlib.dumps(obj, fmt=fmt, sort_keys=False)
    with open(path, "wb") as f:
        f.write(data)


def edit_plist(path: str, modifier: Callable[[dict], None]) -> bool:
    """读取 plist、交给 `modifier` 原地修改，再按原格式写回。"""
    if not os.path.isfile(path):
        log.error(f"plist not found: {path}")
        return False

    try:
        fmt = plist_format(path)
        obj = load_plist(path)
    except (plistlib.InvalidFileException, ValueError, ExpatError) as e:
        log.error(f"failed to parse {path}: {e}")
        return False
    if not isinstance(obj, dict):
        log.error(f"plist root is not a dictionary: {path}")
        return False

    try:
        modifier(obj)
    except (TypeError, ValueError) as e:
        log.error(f"invalid plist edit on {path}: {e}")
        return False

    try:
        save_plist(path, obj, fmt)
    except OSError as e:
        log.error(f"failed to write {path}: {e}")
        return False
    return True


def update_info_plist_value(project_root: str, key: str, value: Any) -> bool:
    """添加或更新 `Info.plist` 顶层键值，成功返回 True。"""

    def modifier(obj: dict) -> None:
        if key in obj:
            old = obj[key]
            if old != value:
                log.info(f"updated Info.plist '{key}': '{old}' -> '{value}'")
            else:
                log.info(f"Info.plist '{key}' already '{value}'")
        else:
            log.info(f"added Info.plist '{key}' = '{value}'")
        obj[key] = value

    return edit_plist(info_plist_path(project_root), modifier)
