import plistlib

import pytest

from cap_builder import ios_build
from cap_builder.config import AppConfig, BuildConfig, IosConfig, OutputConfig, ProjectPaths
from cap_builder.provisioning import ProvisioningProfile

PROFILE = ProvisioningProfile(
    raw={},
    team_id="TEAM123456",
    name="Shop Ad Hoc",
    uuid="1234",
    application_identifier="TEAM123456.com.example.shop",
    entitlements={},
)


class _FakeKeychain:
    events: list = []

    def __init__(self, password: str) -> None:
        self.password = password

    def __enter__(self):
        self.events.append("enter")
        return self

    def import_p12(self, p12_path: str, p12_password: str) -> None:
        self.events.append(("import", p12_path, p12_password))

    def __exit__(self, *_exc) -> None:
        self.events.append("exit")


def _cfg(**ios_kwargs) -> BuildConfig:
    ios = dict(p12_path="certs/dist.p12", p12_password="pw", provisioning_profile="certs/shop.mobileprovision")
    ios.update(ios_kwargs)
    return BuildConfig(
        app=AppConfig(app_id="com.example.shop", display_name="Shop", version_name="2.0.4", build_number="7"),
        ios=IosConfig(**ios),
        output=OutputConfig(artifacts_dir="out", ios_ipa_name_format="{appName}-{buildNumber}.ipa"),
    )


def _project(tmp_path) -> ProjectPaths:
    (tmp_path / "certs").mkdir()
    (tmp_path / "certs" / "dist.p12").write_bytes(b"p12")
    (tmp_path / "certs" / "shop.mobileprovision").write_bytes(b"profile")
    (tmp_path / "ios" / "App" / "App.xcworkspace").mkdir(parents=True)
    (tmp_path / "ios" / "App" / "App.xcodeproj").mkdir(parents=True)
    return ProjectPaths.from_root(str(tmp_path))


def test_export_method() -> None:
    assert ios_build.export_method("distribution") == "release-testing"
    assert ios_build.export_method("development") == "development"
    assert ios_build.export_method("ad-hoc") == "release-testing"


def test_export_options_maps_bundle_to_profile() -> None:
    opts = ios_build.export_options(_cfg(p12_type="development"), PROFILE)

    assert opts["method"] == "development"
    assert opts["teamID"] == "TEAM123456"
    assert opts["signingStyle"] == "manual"
    assert opts["provisioningProfiles"] == {"com.example.shop": "Shop Ad Hoc"}


def test_project_or_workspace_prefers_workspace(tmp_path) -> None:
    (tmp_path / "App" / "App.xcodeproj").mkdir(parents=True)
    assert ios_build.project_or_workspace(str(tmp_path))[0] == "-project"

    (tmp_path / "App" / "App.xcworkspace").mkdir()
    assert ios_build.project_or_workspace(str(tmp_path))[0] == "-workspace"


def test_project_or_workspace_missing_is_fatal(tmp_path) -> None:
    with pytest.raises(SystemExit):
        ios_build.project_or_workspace(str(tmp_path))


def test_ios_build_requires_macos(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(ios_build.sys, "platform", "linux")

    with pytest.raises(SystemExit, match="require macOS"):
        ios_build.ios_build(_project(tmp_path), _cfg())


def test_ios_build_requires_signing_config(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(ios_build.sys, "platform", "darwin")

    with pytest.raises(SystemExit, match="iOS signing is not configured"):
        ios_build.ios_build(_project(tmp_path), _cfg(p12_password=""))


def test_ios_build_missing_certificate_is_fatal(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(ios_build.sys, "platform", "darwin")
    paths = _project(tmp_path)
    (tmp_path / "certs" / "dist.p12").unlink()

    with pytest.raises(SystemExit, match="p12 certificate not found"):
        ios_build.ios_build(paths, _cfg())


def test_ios_build_signs_archives_and_exports(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(ios_build.sys, "platform", "darwin")
    paths = _project(tmp_path)
    events: list = []
    _FakeKeychain.events = events

    def fake_run_cmd(cmd, *, cwd=None, env=None, stream=True):
        _ = stream
        events.append((cmd[1], cwd, env))
        if cmd[1] == "-exportArchive":
            ipa_dir = tmp_path / "ios" / "build" / "IPA"
            ipa_dir.mkdir(parents=True)
            (ipa_dir / "App.ipa").write_bytes(b"ipa-bytes")
        return ""

    monkeypatch.setattr(ios_build, "run_cmd", fake_run_cmd)
    monkeypatch.setattr(ios_build, "TemporaryKeychain", _FakeKeychain)
    monkeypatch.setattr(ios_build, "load_mobileprovision", lambda _p: PROFILE)
    monkeypatch.setattr(ios_build, "install_profile", lambda p: events.append(("install", p)))
    monkeypatch.setattr(
        ios_build,
        "apply_signing_configuration",
        lambda path, target, team, profile: events.append(("sign", path, target, team, profile)),
    )

    dest = ios_build.ios_build(paths, _cfg())

    ios_dir = tmp_path / "ios"
    assert events[0] == "enter"
    assert events[1] == ("import", str(tmp_path / "certs" / "dist.p12"), "pw")
    assert events[2] == ("install", str(tmp_path / "certs" / "shop.mobileprovision"))
    assert events[3] == (
        "sign",
        str(ios_dir / "App" / "App.xcodeproj" / "project.pbxproj"),
        "App",
        "TEAM123456",
        "Shop Ad Hoc",
    )
    assert events[4] == (
        "archive",
        str(ios_dir),
        {"XCODE_DEVELOPMENT_TEAM": "TEAM123456", "BUILD_NUMBER": "7"},
    )
    assert events[5] == ("-exportArchive", str(ios_dir), None)
    assert events[6] == "exit"

    options = plistlib.loads((ios_dir / "build" / "exportOptions.plist").read_bytes())
    assert options["provisioningProfiles"] == {"com.example.shop": "Shop Ad Hoc"}
    assert dest == str(tmp_path / "out" / "Shop" / "Shop-7.ipa")
    assert (tmp_path / "out" / "Shop" / "Shop-7.ipa").read_bytes() == b"ipa-bytes"


def test_ios_build_without_exported_ipa_raises(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(ios_build.sys, "platform", "darwin")
    _FakeKeychain.events = []
    monkeypatch.setattr(ios_build, "run_cmd", lambda *_a, **_k: "")
    monkeypatch.setattr(ios_build, "TemporaryKeychain", _FakeKeychain)
    monkeypatch.setattr(ios_build, "load_mobileprovision", lambda _p: PROFILE)
    monkeypatch.setattr(ios_build, "install_profile", lambda _p: None)
    monkeypatch.setattr(ios_build, "apply_signing_configuration", lambda *_a: None)

    with pytest.raises(RuntimeError, match="exported ipa not found"):
        ios_build.ios_build(_project(tmp_path), _cfg())
