"""
构建配置：从 `build.config.toml` 读取应用信息、平台签名信息与产物输出设置。

配置中的相对路径都以项目根目录为基准。
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib

DEFAULT_CONFIG_NAME = "build.config.toml"

# 每个应用都会安装的 Capacitor 插件。
BASE_PLUGINS = (
    "@capacitor/app",
    "@ionic/pwa-elements",
    "@capacitor/app-launcher",
    "@capacitor/browser",
    "@capacitor/camera",
    "@capacitor/clipboard",
    "@capacitor/filesystem",
    "@capacitor/haptics",
    "@capacitor/keyboard",
    "@capacitor/network",
    "@capacitor/share",
    "@capacitor/splash-screen",
    "@capacitor/status-bar",
    "@capacitor/device",
    "@capacitor/file-transfer",
)


@dataclass(frozen=True)
class AppConfig:
    app_id: str = ""
    display_name: str = ""
    short_name: str = ""
    version_name: str = ""
    build_number: str = ""
    start_url: str = ""
    theme_color: str = ""
    background_color: str = ""
    default_screen_orientation: str = "portrait"
    scheme: str = ""


@dataclass(frozen=True)
class AndroidConfig:
    build_type: str = "release"
    keystore_path: str = ""
    keystore_password: str = ""
    key_alias: str = ""
    key_password: str = ""
    release_type: str = "APK"

    def has_signing(self) -> bool:
        return all((self.keystore_path, self.keystore_password, self.key_alias, self.key_password))


@dataclass(frozen=True)
class IosConfig:
    # 取值：UIInterfaceOrientationPortrait / LandscapeLeft / LandscapeRight / PortraitUpsideDown
    supported_orientations: tuple[str, ...] = ()
    # distribution / development / ad-hoc
    p12_type: str = "distribution"
    p12_path: str = ""
    p12_password: str = ""
    provisioning_profile: str = ""

    def has_signing(self) -> bool:
        return all((self.p12_path, self.p12_password, self.provisioning_profile))


@dataclass(frozen=True)
class OutputConfig:
    artifacts_dir: str = "./build"
    # 占位符：{versionName} {buildNumber} {date} {time}
    android_apk_name_format: str = "app-{versionName}-{date}.apk"
    # 占位符：{appName} {versionName} {buildNumber} {date} {time}
    ios_ipa_name_format: str = "{appName}-{versionName}-{date}.ipa"


@dataclass(frozen=True)
class BuildConfig:
    app: AppConfig = field(default_factory=AppConfig)
    android: AndroidConfig = field(default_factory=AndroidConfig)
    ios: IosConfig = field(default_factory=IosConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    plugins: tuple[str, ...] = ()
    build_type: str = "release"

    @property
    def is_release(self) -> bool:
        return self.build_type == "release"


@dataclass(frozen=True)
class ProjectPaths:
    """由项目根目录推导出的各平台路径；初始化后只读。"""

    project_root: str
    android_dir: str
    ios_dir: str

    @classmethod
    def from_root(cls, project_root: str) -> "ProjectPaths":
        root = os.path.abspath(project_root)
        return cls(
            project_root=root,
            android_dir=os.path.join(root, "android"),
            ios_dir=os.path.join(root, "ios"),
        )

    @property
    def capacitor_config(self) -> str:
        return os.path.join(self.project_root, "capacitor.config.json")

    @property
    def assets_dir(self) -> str:
        return os.path.join(self.project_root, "assets")

    def resolve(self, path: str) -> str:
        return os.path.abspath(os.path.join(self.project_root, os.path.expanduser(path)))


def _section(cls: type, raw: Any, name: str) -> Any:
    """把 TOML 表转换为对应 dataclass，未知键直接报错。"""
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise SystemExit(f"Error: [{name}] must be a table in build config")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise SystemExit(f"Error: unknown keys in [{name}]: {', '.join(unknown)}")
    values = {}
    for k, v in raw.items():
        if isinstance(v, list):
            v = tuple(v)
        elif isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        values[k] = v
    return cls(**values)


def parse_build_config(raw: dict) -> BuildConfig:
    plugins = raw.get("plugins", [])
    if not isinstance(plugins, list) or not all(isinstance(p, str) for p in plugins):
        raise SystemExit("Error: 'plugins' must be a list of package names")
    return BuildConfig(
        app=_section(AppConfig, raw.get("app"), "app"),
        android=_section(AndroidConfig, raw.get("android"), "android"),
        ios=_section(IosConfig, raw.get("ios"), "ios"),
        output=_section(OutputConfig, raw.get("output"), "output"),
        plugins=tuple(plugins),
        build_type=str(raw.get("build_type", "release")),
    )


def load_build_config(path: str) -> BuildConfig:
    """读取并校验 TOML 构建配置。"""
    if not os.path.isfile(path):
        raise SystemExit(f"Error: build config not found: {path}")
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SystemExit(f"Error: invalid build config {path}: {e}") from e
    return parse_build_config(raw)
