"""
Xcode `project.pbxproj` editing.

The project file is an object table keyed by opaque 24-hex IDs. Only a native
target's `name` is meaningful to a human, so every lookup starts from the target
name and follows ID references from there:

    PBXProject.targets -> PBXNativeTarget (by name)
        -> XCConfigurationList -> XCBuildConfiguration* -> buildSettings

`apply_signing_configuration` switches the app target to manual signing with a
given team and provisioning profile. The whole graph is held in memory and
written once at the end, so a fatal error leaves the file on disk untouched.
"""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from typing import Any

from pbxproj import XcodeProject
from pbxproj.PBXGenericObject import PBXGenericObject

from . import log

SDK_IPHONEOS = "[sdk=iphoneos*]"
DISTRIBUTION_IDENTITY = "iPhone Distribution"
# Value written to the project's upgrade-check attributes so Xcode does not
# offer to "update to recommended settings" and reset signing.
UPGRADE_CHECK_SENTINEL = "0920"

# Unqualified CODE_SIGN_IDENTITY used when a configuration has none.
FALLBACK_IDENTITY = {
    "Debug": "iPhone Developer",
    "Release": DISTRIBUTION_IDENTITY,
}


def qualified(key: str) -> str:
    return f"{key}{SDK_IPHONEOS}"


def _field(node: Any, key: str) -> Any:
    return getattr(node, key, None)


class ProjectGraph:
    """Node table over a parsed `project.pbxproj` plus typed accessors."""

    def __init__(self, project: XcodeProject, path: str) -> None:
        self.project = project
        self.path = path

    @classmethod
    def load(cls, path: str) -> "ProjectGraph":
        log.debug(f"loading Xcode project: {path}")
        return cls(XcodeProject.load(path), path)

    def node(self, object_id: str) -> Any:
        return self.project["objects"][object_id]

    @property
    def root_id(self) -> str | None:
        return _field(self.project, "rootObject")

    def project_node(self) -> Any:
        root_id = self.root_id
        if not root_id:
            return None
        return self.node(root_id)

    def project_attributes(self) -> Any:
        root = self.project_node()
        if root is None:
            return None
        return _field(root, "attributes")

    def resolve_target_by_name(self, name: str) -> tuple[str, Any] | None:
        """Return `(target_id, target)` for the native target called `name`."""
        root = self.project_node()
        if root is None:
            return None
        for target_id in _field(root, "targets") or []:
            target = self.node(target_id)
            if target is None or _field(target, "isa") != "PBXNativeTarget":
                continue
            if _field(target, "name") == name:
                return target_id, target
        return None

    def resolve_configurations_for_target(self, target: Any) -> list[Any]:
        list_id = _field(target, "buildConfigurationList")
        config_list = self.node(list_id) if list_id else None
        if config_list is None:
            return []
        out = []
        for config_id in _field(config_list, "buildConfigurations") or []:
            config = self.node(config_id)
            if config is None:
                raise SystemExit(
                    f"Error: build configuration {config_id} referenced by {list_id} not found in {self.path}"
                )
            out.append(config)
        return out

    def save(self) -> None:
        """Write the whole graph next to the target path, then swap it in."""
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp = tempfile.mkstemp(prefix=".project.", suffix=".pbxproj", dir=directory)
        os.close(fd)
        try:
            self.project.save(tmp)
            shutil.copymode(self.path, tmp)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise


def child_map(parent: Any, key: str) -> Any:
    """Return the dictionary node at `parent[key]`, creating an empty one when absent."""
    node = _field(parent, key)
    if node is None:
        parent[key] = PBXGenericObject(parent)
        node = _field(parent, key)
    return node


def _apply_config_signing(config: Any, team_id: str, profile_identifier: str) -> None:
    settings = child_map(config, "buildSettings")
    name = _field(config, "name")

    settings[qualified("CODE_SIGN_IDENTITY")] = DISTRIBUTION_IDENTITY
    if _field(settings, "CODE_SIGN_IDENTITY") is None:
        settings["CODE_SIGN_IDENTITY"] = FALLBACK_IDENTITY[name]
    settings["CODE_SIGN_STYLE"] = "Manual"
    settings["DEVELOPMENT_TEAM"] = ""
    settings[qualified("DEVELOPMENT_TEAM")] = team_id
    settings["PROVISIONING_PROFILE_SPECIFIER"] = ""
    settings[qualified("PROVISIONING_PROFILE_SPECIFIER")] = profile_identifier


def apply_signing_configuration(
    project_file: str, target_name: str, team_id: str, profile_identifier: str
) -> None:
    """Configure manual signing for `target_name`; any resolution failure is fatal."""
    log.step(f"Configuring signing in {project_file}")
    graph = ProjectGraph.load(project_file)

    resolved = graph.resolve_target_by_name(target_name)
    if resolved is None:
        raise SystemExit(
            f"Error: native target '{target_name}' not found in {project_file}; "
            "cannot configure signing."
        )
    target_id, target = resolved
    log.info(f"target '{target_name}' ({target_id})")

    attributes = graph.project_attributes()
    if attributes is None:
        raise SystemExit(f"Error: project root object or its attributes missing in {project_file}")

    attributes["LastSwiftUpdateCheck"] = UPGRADE_CHECK_SENTINEL
    attributes["LastUpgradeCheck"] = UPGRADE_CHECK_SENTINEL
    target_attributes = child_map(child_map(attributes, "TargetAttributes"), target_id)
    target_attributes["ProvisioningStyle"] = "Manual"
    log.info("TargetAttributes ProvisioningStyle = Manual")

    configs = graph.resolve_configurations_for_target(target)
    if not configs:
        raise SystemExit(f"Error: target '{target_name}' has no build configurations")

    for config in configs:
        name = _field(config, "name")
        if name not in FALLBACK_IDENTITY:
            log.warn(f"no signing rules for configuration '{name}', skipped")
            continue
        _apply_config_signing(config, team_id, profile_identifier)
        log.info(f"{name}: manual signing, team {team_id}, profile '{profile_identifier}'")

    graph.save()
    log.step("Xcode project signing updated")


def inject_build_setting(raw_text: str, key: str, value: str) -> str:
    """Replace every existing `key = ...;` assignment in raw pbxproj text.

    Works on the text directly and never inserts a missing key; prefer the
    structured editor above for anything beyond a one-off literal override.
    """
    pattern = re.compile(rf'((?<![\w"])"?{re.escape(key)}"?\s*=\s*)(.*?)(;)')
    return pattern.sub(lambda m: f"{m.group(1)}{value}{m.group(3)}", raw_text)
