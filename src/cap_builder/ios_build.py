"""
iOS 打包流程（仅 macOS）。

1) 校验签名配置并解析描述文件（Team ID / Profile 名称）
2) 临时钥匙串导入 P12，安装描述文件
3) 改写 `project.pbxproj` 为手动签名
4) 生成 `exportOptions.plist`，`xcodebuild archive` + `-exportArchive`
5) 按命名模板复制 IPA 到产物目录
"""

from __future__ import annotations

import os
import sys
from typing import Any

from . import log
from .artifacts import copy_artifact, find_first_file, format_artifact_name
from .config import BuildConfig, ProjectPaths
from .keychain import TemporaryKeychain
from .pipeline_utils import run_cmd
from .plist_edit import save_plist
from .provisioning import ProvisioningProfile, install_profile, load_mobileprovision
from .xcode_project import apply_signing_configuration

SCHEME = "App"
SIGNING_CERTIFICATE = "Apple Distribution"


def export_method(p12_type: str) -> str:
    if p12_type == "development":
        return "development"
    return "release-testing"


def export_options(cfg: BuildConfig, profile: ProvisioningProfile) -> dict[str, Any]:
    """`xcodebuild -exportArchive` 使用的导出选项。"""
    return {
        "method": export_method(cfg.ios.p12_type),
        "signingCertificate": SIGNING_CERTIFICATE,
        "teamID": profile.team_id,
        "signingStyle": "manual",
        "stripSwiftSymbols": True,
        "uploadBitcode": False,
        "uploadSymbols": True,
        "provisioningProfiles": {cfg.app.app_id: profile.name},
    }


def _check_ios_config(paths: ProjectPaths, cfg: BuildConfig) -> tuple[str, str]:
    ios = cfg.ios
    if not ios.has_signing():
        raise SystemExit(
            "Error: iOS signing is not configured.\n"
            "Hint: set p12_path, p12_password and provisioning_profile under [ios].\n"
        )
    if not cfg.app.app_id:
        raise SystemExit("Error: [app] app_id is required for iOS export")

    p12 = paths.resolve(ios.p12_path)
    if not os.path.isfile(p12):
        raise SystemExit(f"Error: p12 certificate not found: {p12}")
    profile = paths.resolve(ios.provisioning_profile)
    if not os.path.isfile(profile):
        raise SystemExit(f"Error: provisioning profile not found: {profile}")
    return p12, profile


def project_or_workspace(ios_dir: str) -> list[str]:
    """优先使用 `App.xcworkspace`（CocoaPods），否则回退到 `App.xcodeproj`。"""
    workspace = os.path.join(ios_dir, "App", "App.xcworkspace")
    if os.path.isdir(workspace):
        log.info(f"using Xcode workspace: {workspace}")
        return ["-workspace", workspace]
    project = os.path.join(ios_dir, "App", "App.xcodeproj")
    if os.path.isdir(project):
        log.info(f"using Xcode project: {project}")
        return ["-project", project]
    raise SystemExit(f"Error: no App.xcworkspace or App.xcodeproj under {ios_dir}/App")


def pbxproj_path(ios_dir: str) -> str:
    return os.path.join(ios_dir, "App", "App.xcodeproj", "project.pbxproj")


def ios_build(paths: ProjectPaths, cfg: BuildConfig) -> str:
    """构建、签名并导出 IPA，返回复制后的 IPA 路径。"""
    if sys.platform != "darwin":
        raise SystemExit("Error: iOS builds require macOS (xcodebuild and security).")
    if not os.path.isdir(paths.ios_dir):
        raise SystemExit(f"Error: ios platform directory missing: {paths.ios_dir}")

    p12_path, profile_path = _check_ios_config(paths, cfg)

    log.step("Reading provisioning profile")
    profile = load_mobileprovision(profile_path)
    log.info(f"team id: {profile.team_id}, profile: {profile.name}")

    build_dir = os.path.join(paths.ios_dir, "build")
    archive_path = os.path.join(build_dir, f"{SCHEME}.xcarchive")
    export_path = os.path.join(build_dir, "IPA")
    options_path = os.path.join(build_dir, "exportOptions.plist")

    with TemporaryKeychain(cfg.ios.p12_password) as keychain:
        keychain.import_p12(p12_path, cfg.ios.p12_password)
        install_profile(profile_path)

        log.step("Applying manual signing to project.pbxproj")
        apply_signing_configuration(pbxproj_path(paths.ios_dir), SCHEME, profile.team_id, profile.name)

        os.makedirs(build_dir, exist_ok=True)
        save_plist(options_path, export_options(cfg, profile))
        log.info(f"export options written: {options_path}")

        log.step("Archiving with xcodebuild")
        run_cmd(
            [
                "xcodebuild", "archive",
                *project_or_workspace(paths.ios_dir),
                "-scheme", SCHEME,
                "-configuration", "Release",
                "-destination", "generic/platform=iOS",
                "-archivePath", archive_path,
                "CODE_SIGN_STYLE=Manual",
                f"DEVELOPMENT_TEAM={profile.team_id}",
                f"PROVISIONING_PROFILE_SPECIFIER={profile.name}",
            ],
            cwd=paths.ios_dir,
            env={"XCODE_DEVELOPMENT_TEAM": profile.team_id, "BUILD_NUMBER": cfg.app.build_number},
        )

        log.step("Exporting ipa")
        run_cmd(
            [
                "xcodebuild", "-exportArchive",
                "-archivePath", archive_path,
                "-exportPath", export_path,
                "-exportOptionsPlist", options_path,
            ],
            cwd=paths.ios_dir,
        )

    ipa = find_first_file(export_path, ".ipa")
    if not ipa:
        raise RuntimeError(f"exported ipa not found in {export_path}")

    app = cfg.app
    name = format_artifact_name(
        cfg.output.ios_ipa_name_format,
        app_name=app.display_name,
        version_name=app.version_name,
        build_number=app.build_number,
    )
    dest_dir = os.path.join(paths.resolve(cfg.output.artifacts_dir), app.display_name)
    dest = copy_artifact(ipa, dest_dir, name)
    log.step(f"iOS ipa ready: {dest}")
    return dest
