"""
通过 `@capacitor/assets` 生成应用图标与启动画面。

资源缺失或生成失败都不会中断打包，只输出提示。
"""

from __future__ import annotations

import os

from . import log
from .config import ProjectPaths
from .pipeline_utils import run_cmd

REQUIRED_FILES = (
    "splash.png",
    "splash-dark.png",
    "icon-only.png",
    "icon-foreground.png",
    "icon-background.png",
)


def missing_asset_files(assets_dir: str) -> list[str]:
    present = set(os.listdir(assets_dir))
    return [name for name in REQUIRED_FILES if name not in present]


def generate_assets(paths: ProjectPaths, platform: str) -> bool:
    """为 `android` 或 `ios` 生成图标资源，成功返回 True。"""
    assets_dir = paths.assets_dir
    log.step(f"Generating {platform} icons and splash screens")
    if not os.path.isdir(assets_dir):
        log.warn(f"assets directory not found, skipped: {assets_dir}")
        return False

    missing = missing_asset_files(assets_dir)
    if missing:
        log.error(f"missing files in {assets_dir}: {', '.join(missing)}")
        return False

    try:
        run_cmd(
            ["npx", "capacitor-assets", "generate", f"--{platform}", "--verbose"],
            cwd=paths.project_root,
            stream=log.is_verbose(),
        )
    except RuntimeError as e:
        log.error(f"failed to generate {platform} assets: {e}")
        return False
    log.info(f"{platform} assets generated")
    return True
