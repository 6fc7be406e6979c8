"""
`capacitor.config.json` 的生成与更新。

保留文件中已有的其它键，只覆盖由构建配置决定的字段。
"""

from __future__ import annotations

import json
import os
from typing import Any
from urllib.parse import urlparse

from . import log
from .config import BuildConfig, ProjectPaths

DEFAULT_BACKGROUND = "#575b5f30"


def server_config(start_url: str) -> dict[str, Any]:
    """根据启动 URL 生成 Capacitor `server` 配置。"""
    url = urlparse(start_url)
    if not url.scheme or not url.hostname:
        raise ValueError(f"invalid start_url: {start_url!r}")
    return {
        "url": start_url,
        "hostname": url.hostname,
        "androidScheme": url.scheme,
        "iosScheme": url.scheme,
        "allowNavigation": [url.hostname],
        "allowMixedContent": True,
        "cleartext": True,
        "errorPath": "error.html",
    }


def apply_build_config(cap: dict[str, Any], cfg: BuildConfig, paths: ProjectPaths) -> dict[str, Any]:
    """把构建配置写入 Capacitor 配置字典（原地修改并返回）。"""
    app = cfg.app
    cap["appId"] = app.app_id
    cap["appName"] = app.display_name
    cap["webDir"] = "www"
    if app.start_url:
        try:
            cap["server"] = server_config(app.start_url)
        except ValueError as e:
            raise SystemExit(f"Error: [app] {e}") from e
    cap["backgroundColor"] = app.background_color or DEFAULT_BACKGROUND
    cap["loggingBehavior"] = "production" if cfg.is_release else "debug"

    android = cfg.android
    if android.has_signing():
        cap.setdefault("android", {})
        cap["android"]["buildOptions"] = {
            "keystorePath": paths.resolve(android.keystore_path),
            "keystorePassword": android.keystore_password,
            "keystoreAlias": android.key_alias,
            "keystoreAliasPassword": android.key_password,
            "releaseType": android.release_type or "APK",
            "signingType": "apksigner",
        }
        log.info("android signing options written")
    else:
        log.warn("android signing is not fully configured; skipping android.buildOptions")

    ios = cfg.ios
    if ios.has_signing():
        cap.setdefault("ios", {})
        cap["ios"]["preferredContentMode"] = "mobile"
        cap["ios"]["buildOptions"] = {
            "signingCertificate": ios.p12_path,
            "provisioningProfile": ios.provisioning_profile,
        }
        log.info("ios build options written")
    else:
        log.warn("ios signing is not fully configured; skipping ios.buildOptions")

    return cap


def update_capacitor_config(paths: ProjectPaths, cfg: BuildConfig) -> None:
    path = paths.capacitor_config
    cap: dict[str, Any] = {}
    if os.path.isfile(path):
        with open(path, "r", encoding="utf-8") as f:
            cap = json.load(f)
    apply_build_config(cap, cfg, paths)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(cap, f, indent=2, ensure_ascii=False)
        f.write("\n")
    log.info(f"updated {path}")
