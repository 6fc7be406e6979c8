"""
签名描述文件（`mobileprovision`）解析辅助模块。

`.mobileprovision` 是 CMS 封装的 plist，其中的 XML 明文可以直接截取，无需调用 `security cms`。
"""

from __future__ import annotations

import os
import plistlib
import shutil
from dataclasses import dataclass
from typing import Any

from . import log

PROFILES_DIR = os.path.join("~", "Library", "MobileDevice", "Provisioning Profiles")


@dataclass(frozen=True)
class ProvisioningProfile:
    """描述已解析签名描述文件的关键信息。"""

    raw: dict[str, Any]
    team_id: str
    name: str
    uuid: str
    application_identifier: str
    entitlements: dict[str, Any]


def extract_plist_bytes(data: bytes) -> bytes:
    """从 CMS 封装的数据中截取 XML plist 部分。"""
    start = data.find(b"<?xml")
    if start == -1:
        start = data.find(b"<plist")
    end = data.find(b"</plist>")
    if start == -1 or end == -1 or end < start:
        raise RuntimeError("no plist payload found in provisioning profile")
    return data[start : end + len(b"</plist>")]


def parse_mobileprovision(data: bytes) -> ProvisioningProfile:
    raw = plistlib.loads(extract_plist_bytes(data))
    if not isinstance(raw, dict):
        raise RuntimeError("provisioning profile payload is not a dictionary")

    ents = raw.get("Entitlements", {})
    if not isinstance(ents, dict):
        ents = {}

    team_id = ""
    teams = raw.get("TeamIdentifier")
    if isinstance(teams, list) and teams and isinstance(teams[0], str):
        team_id = teams[0]
    if not team_id:
        v = ents.get("com.apple.developer.team-identifier")
        if isinstance(v, str):
            team_id = v
    app_id = ents.get("application-identifier")
    if not isinstance(app_id, str):
        app_id = ""
    if not team_id and "." in app_id:
        team_id = app_id.split(".", 1)[0]

    if not team_id:
        raise RuntimeError("Failed to extract team id from provisioning profile")

    return ProvisioningProfile(
        raw=raw,
        team_id=team_id,
        name=str(raw.get("Name", "")),
        uuid=str(raw.get("UUID", "")),
        application_identifier=app_id,
        entitlements=ents,
    )


def load_mobileprovision(path: str) -> ProvisioningProfile:
    """读取 `.mobileprovision` 并提取团队标识（Team ID）、名称与 UUID。"""
    with open(path, "rb") as f:
        return parse_mobileprovision(f.read())


def install_profile(path: str, profiles_dir: str = PROFILES_DIR) -> str:
    """把描述文件复制到 Xcode 识别的目录，返回目标路径。"""
    dest_dir = os.path.expanduser(profiles_dir)
    os.makedirs(dest_dir, exist_ok=True)
    dest = os.path.join(dest_dir, os.path.basename(path))
    shutil.copyfile(path, dest)
    log.info(f"provisioning profile installed: {dest}")
    return dest
