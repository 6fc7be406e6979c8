from __future__ import annotations

"""
Android 打包：`npx cap build android`，再把 APK 按命名模板复制到产物目录。
"""

import os

from . import log
from .artifacts import copy_artifact, format_artifact_name
from .config import BuildConfig, ProjectPaths
from .pipeline_utils import run_cmd

APK_CANDIDATES = ("app-release.apk", "app-release-signed.apk")


def release_apk_dir(paths: ProjectPaths) -> str:
    return os.path.join(paths.android_dir, "app", "build", "outputs", "apk", "release")


def find_release_apk(apk_dir: str) -> str:
    """按优先级查找 release APK，都不存在时抛出 RuntimeError。"""
    for name in APK_CANDIDATES:
        p = os.path.join(apk_dir, name)
        if os.path.isfile(p):
            return p

    if os.path.isdir(apk_dir):
        found = sorted(n for n in os.listdir(apk_dir) if n.endswith(".apk"))
        log.info(f"apk files in {apk_dir}: {found}")
    raise RuntimeError(
        f"built apk not found in {apk_dir} (expected one of: {', '.join(APK_CANDIDATES)})"
    )


def android_build(paths: ProjectPaths, cfg: BuildConfig, prod: bool = False) -> str:
    """构建 Android 工程并返回复制后的 APK 路径。"""
    if not cfg.android.has_signing():
        log.warn("android signing is not configured, the apk may be unsigned")

    log.step("Building android project")
    cmd = ["npx", "cap", "build", "android"]
    if prod:
        cmd.append("--prod")
    run_cmd(cmd, cwd=paths.project_root)

    src = find_release_apk(release_apk_dir(paths))
    log.info(f"built apk: {src}")

    app = cfg.app
    name = format_artifact_name(
        cfg.output.android_apk_name_format,
        app_name=app.display_name,
        version_name=app.version_name,
        build_number=app.build_number,
    )
    dest_dir = os.path.join(paths.resolve(cfg.output.artifacts_dir), app.display_name)
    dest = copy_artifact(src, dest_dir, name)
    log.step(f"Android apk ready: {dest}")
    return dest
