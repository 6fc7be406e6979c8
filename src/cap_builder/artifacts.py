"""
构建产物命名与复制。
"""

from __future__ import annotations

import os
import shutil
from datetime import datetime

from . import log


def format_artifact_name(
    fmt: str,
    *,
    app_name: str = "",
    version_name: str = "",
    build_number: str = "",
    now: datetime | None = None,
) -> str:
    """替换文件名模板中的 `{appName}` `{versionName}` `{buildNumber}` `{date}` `{time}`。"""
    now = now or datetime.now()
    replacements = {
        "{appName}": app_name,
        "{versionName}": version_name,
        "{buildNumber}": str(build_number),
        "{date}": now.strftime("%Y%m%d"),
        "{time}": now.strftime("%H%M%S"),
    }
    out = fmt
    for placeholder, value in replacements.items():
        out = out.replace(placeholder, value)
    return out


def copy_artifact(src: str, dest_dir: str, file_name: str) -> str:
    """复制产物到 `dest_dir/file_name`（目录不存在时创建），返回目标路径。"""
    os.makedirs(dest_dir, exist_ok=True)
    dest = os.path.join(dest_dir, file_name)
    shutil.copyfile(src, dest)
    log.info(f"artifact copied to {dest}")
    return dest


def find_first_file(directory: str, suffix: str) -> str:
    if not os.path.isdir(directory):
        return ""
    for name in sorted(os.listdir(directory)):
        p = os.path.join(directory, name)
        if os.path.isfile(p) and name.endswith(suffix):
            return p
    return ""
