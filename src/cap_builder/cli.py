"""
`cap-builder` 的命令行入口模块。

读取 `build.config.toml`，依次执行基础预处理、平台预处理，带 `--build` 时再执行平台打包。
"""

import argparse
import os
import sys
from collections.abc import Sequence

from . import log
from .android_build import android_build
from .config import DEFAULT_CONFIG_NAME, BuildConfig, ProjectPaths, load_build_config
from .ios_build import ios_build
from .prepare import android_pre_process, base_pre_process, ios_pre_process

PLATFORMS = ("android", "ios", "all")


def build_parser() -> argparse.ArgumentParser:
    """构建并返回 `cap-builder` 命令行参数解析器。"""
    p = argparse.ArgumentParser(
        prog="cap-builder",
        formatter_class=argparse.RawTextHelpFormatter,
        description=(
            "Prepare the native Capacitor projects (manifest, gradle, Info.plist, signing)\n"
            "and optionally build a signed .apk / .ipa."
        ),
    )
    p.add_argument("platform", choices=PLATFORMS, help="Target platform")
    p.add_argument(
        "--build",
        action="store_true",
        help="Build and copy artifacts after pre-processing (default: pre-process only)",
    )
    p.add_argument("--prod", action="store_true", help="Pass --prod to `npx cap build android`")
    p.add_argument(
        "-c",
        "--config",
        default="",
        help=f"Build config path (default: <project-root>/{DEFAULT_CONFIG_NAME})",
    )
    p.add_argument(
        "-C",
        "--project-root",
        default="",
        help="Capacitor project root (default: current directory)",
    )
    p.add_argument("--verbose", action="store_true", help="Verbose logging")
    return p


def _run_android(paths: ProjectPaths, cfg: BuildConfig, *, build: bool, prod: bool) -> None:
    android_pre_process(paths, cfg)
    if not build:
        log.step("Skipping android build (pass --build to package)")
        return
    android_build(paths, cfg, prod=prod)


def _run_ios(paths: ProjectPaths, cfg: BuildConfig, *, build: bool) -> None:
    ios_pre_process(paths, cfg)
    if not build:
        log.step("Skipping iOS build (pass --build to package)")
        return
    ios_build(paths, cfg)


def run(platform: str, paths: ProjectPaths, cfg: BuildConfig, *, build: bool, prod: bool) -> None:
    base_pre_process(paths, cfg)
    if platform in ("ios", "all"):
        _run_ios(paths, cfg, build=build)
    if platform in ("android", "all"):
        _run_android(paths, cfg, build=build, prod=prod)


def main(argv: Sequence[str] | None = None) -> int:
    """CLI 入口：解析参数、读取配置并执行打包流程。"""
    ns = build_parser().parse_args(argv)
    log.set_verbose(bool(ns.verbose))

    root = os.path.abspath(os.path.expanduser(ns.project_root or os.getcwd()))
    if not os.path.isdir(root):
        raise SystemExit(f"Error: project root not found: {root}")
    paths = ProjectPaths.from_root(root)

    config_path = paths.resolve(ns.config) if ns.config else os.path.join(root, DEFAULT_CONFIG_NAME)
    log.step(f"Loading build config: {config_path}")
    cfg = load_build_config(config_path)

    log.step(f"Starting {ns.platform} pipeline")
    try:
        run(ns.platform, paths, cfg, build=bool(ns.build), prod=bool(ns.prod))
    except (RuntimeError, OSError) as e:
        log.error(f"{ns.platform} pipeline failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    log.step(f"{ns.platform} pipeline finished")
    return 0
