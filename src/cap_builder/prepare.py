"""
Pre-processing stages run before any native build.

1) Base: update `capacitor.config.json`, add missing native platforms, install
   missing plugins, `npx cap sync`.
2) Android: make sure the platform exists, then apply manifest / variables.gradle
   edits required by the configured plugins and app settings, generate icons.
3) iOS: make sure the platform and Info.plist exist, `pod install`, generate
   assets, apply Info.plist edits.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from . import log
from .assets import generate_assets
from .capacitor_config import update_capacitor_config
from .config import BASE_PLUGINS, BuildConfig, ProjectPaths
from .gradle import upsert_variable, variables_gradle_path
from .manifest import ManifestEditor
from .pipeline_utils import run_cmd
from .plist_edit import info_plist_path, update_info_plist_value
from .plugins import install_missing_plugins


@dataclass(frozen=True)
class AndroidPluginEdits:
    permissions: tuple[str, ...] = ()
    # (feature name, required)
    features: tuple[tuple[str, bool], ...] = ()
    gradle_variables: tuple[tuple[str, str], ...] = ()


# Native changes a plugin needs beyond what `npx cap sync` does.
ANDROID_PLUGIN_EDITS = {
    "@capacitor/camera": AndroidPluginEdits(
        features=(("android.hardware.camera", False),),
        gradle_variables=(
            ("androidxExifInterfaceVersion", "1.3.7"),
            ("androidxMaterialVersion", "1.12.0"),
        ),
    ),
    "@capacitor/browser": AndroidPluginEdits(
        gradle_variables=(("androidxBrowserVersion", "1.8.0"),),
    ),
    "@capacitor/local-notifications": AndroidPluginEdits(
        permissions=("android.permission.SCHEDULE_EXACT_ALARM",),
    ),
}

IOS_PLUGIN_USAGE = {
    "@capacitor/camera": {
        "NSCameraUsageDescription": "The app uses the camera to take photos.",
        "NSPhotoLibraryUsageDescription": "The app reads photos from your library.",
        "NSPhotoLibraryAddUsageDescription": "The app saves photos to your library.",
    },
}

ANDROID_ORIENTATIONS = {"portrait", "landscape", "sensor", "unspecified"}


def desired_plugins(cfg: BuildConfig) -> list[str]:
    return list(dict.fromkeys([*cfg.plugins, *BASE_PLUGINS]))


def _ensure_platform(paths: ProjectPaths, platform: str) -> None:
    platform_dir = paths.android_dir if platform == "android" else paths.ios_dir
    if os.path.isdir(platform_dir):
        log.info(f"{platform} platform exists: {platform_dir}")
        return
    log.step(f"Adding {platform} platform (npx cap add {platform})")
    run_cmd(["npx", "cap", "add", platform], cwd=paths.project_root)


def base_pre_process(paths: ProjectPaths, cfg: BuildConfig) -> None:
    log.step("Base pre-processing")
    update_capacitor_config(paths, cfg)
    _ensure_platform(paths, "android")
    _ensure_platform(paths, "ios")
    install_missing_plugins(paths.project_root, desired_plugins(cfg))
    log.step("Running npx cap sync")
    run_cmd(["npx", "cap", "sync"], cwd=paths.project_root)


def apply_android_edits(paths: ProjectPaths, cfg: BuildConfig) -> bool:
    """按插件与应用配置修改 AndroidManifest.xml 与 variables.gradle，全部成功返回 True。"""
    editor = ManifestEditor(paths.project_root)
    gradle_file = variables_gradle_path(paths.android_dir)
    ok = True

    orientation = cfg.app.default_screen_orientation
    if orientation:
        if orientation in ANDROID_ORIENTATIONS:
            ok &= editor.update_activity_attribute("android:screenOrientation", orientation)
        else:
            log.warn(f"unsupported screen orientation ignored: {orientation}")

    for plugin in desired_plugins(cfg):
        edits = ANDROID_PLUGIN_EDITS.get(plugin)
        if edits is None:
            continue
        log.debug(f"applying android edits for {plugin}")
        for permission in edits.permissions:
            ok &= editor.add_permission(permission)
        for name, required in edits.features:
            ok &= editor.add_uses_feature(name, required)
        for key, value in edits.gradle_variables:
            ok &= upsert_variable(gradle_file, key, value)
    return ok


def android_pre_process(paths: ProjectPaths, cfg: BuildConfig) -> None:
    log.step("Android pre-processing")
    if not os.path.isdir(paths.android_dir):
        raise RuntimeError(f"android platform directory missing: {paths.android_dir}")

    assets_dir = os.path.join(paths.android_dir, "app", "src", "main", "assets")
    os.makedirs(assets_dir, exist_ok=True)

    if not apply_android_edits(paths, cfg):
        log.warn("some android project edits were not applied")
    generate_assets(paths, "android")
    log.step("Android pre-processing done")


def apply_ios_edits(paths: ProjectPaths, cfg: BuildConfig) -> bool:
    ok = True
    if cfg.app.display_name:
        ok &= update_info_plist_value(paths.project_root, "CFBundleDisplayName", cfg.app.display_name)
    if cfg.ios.supported_orientations:
        ok &= update_info_plist_value(
            paths.project_root,
            "UISupportedInterfaceOrientations",
            list(cfg.ios.supported_orientations),
        )
    for plugin in desired_plugins(cfg):
        for key, text in IOS_PLUGIN_USAGE.get(plugin, {}).items():
            ok &= update_info_plist_value(paths.project_root, key, text)
    return ok


def ios_pre_process(paths: ProjectPaths, cfg: BuildConfig) -> None:
    log.step("iOS pre-processing")
    if not os.path.isdir(paths.ios_dir):
        raise RuntimeError(f"ios platform directory missing: {paths.ios_dir}")
    plist = info_plist_path(paths.project_root)
    if not os.path.isfile(plist):
        raise RuntimeError(f"Info.plist missing: {plist}")

    log.step("Running pod install")
    run_cmd(["pod", "install"], cwd=os.path.join(paths.ios_dir, "App"))

    generate_assets(paths, "ios")
    if not apply_ios_edits(paths, cfg):
        log.warn("some Info.plist edits were not applied")
    log.step("iOS pre-processing done")
