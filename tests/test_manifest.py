from pathlib import Path

from lxml import etree

from cap_builder import manifest
from cap_builder.manifest import ANDROID_NS, ManifestEditor

A = f"{{{ANDROID_NS}}}"

MANIFEST = """<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android">

    <application
        android:allowBackup="true"
        android:label="@string/app_name">

        <activity
            android:name=".MainActivity"
            android:exported="true"
            android:launchMode="singleTask">

            <intent-filter>
                <action android:name="android.intent.action.MAIN" />
                <category android:name="android.intent.category.LAUNCHER" />
            </intent-filter>

        </activity>
    </application>

    <!-- Permissions -->
    <uses-permission android:name="android.permission.INTERNET" />
</manifest>
"""


def _project(tmp_path: Path, text: str = MANIFEST) -> Path:
    path = Path(manifest.manifest_path_for(str(tmp_path)))
    path.parent.mkdir(parents=True)
    path.write_text(text, encoding="utf-8")
    return path


def _root(path: Path) -> etree._Element:
    return etree.parse(str(path)).getroot()


def _names(root: etree._Element, tag: str) -> list[str]:
    return [n.get(f"{A}name") for n in root.findall(tag)]


def test_add_permission_appends_after_existing_permissions(tmp_path) -> None:
    path = _project(tmp_path)

    assert ManifestEditor(str(tmp_path)).add_permission("android.permission.CAMERA")

    root = _root(path)
    assert _names(root, "uses-permission") == [
        "android.permission.INTERNET",
        "android.permission.CAMERA",
    ]
    text = path.read_text(encoding="utf-8")
    assert 'android:name="android.permission.CAMERA"' in text
    assert "ns0:" not in text


def test_add_permission_is_idempotent(tmp_path) -> None:
    path = _project(tmp_path)
    editor = ManifestEditor(str(tmp_path))

    assert editor.add_permission("android.permission.CAMERA")
    once = path.read_bytes()
    assert editor.add_permission("android.permission.CAMERA")

    assert path.read_bytes() == once
    assert _names(_root(path), "uses-permission").count("android.permission.CAMERA") == 1


def test_add_permission_to_manifest_without_permissions(tmp_path) -> None:
    path = _project(
        tmp_path,
        '<manifest xmlns:android="http://schemas.android.com/apk/res/android">'
        "<application/></manifest>",
    )

    assert ManifestEditor(str(tmp_path)).add_permission("android.permission.VIBRATE")

    assert _names(_root(path), "uses-permission") == ["android.permission.VIBRATE"]


def test_add_uses_feature_treats_boolean_strings_as_equal(tmp_path) -> None:
    path = _project(tmp_path)
    editor = ManifestEditor(str(tmp_path))

    assert editor.add_uses_feature("android.hardware.camera", False)
    assert editor.add_uses_feature("android.hardware.camera", "false")

    features = _root(path).findall("uses-feature")
    assert len(features) == 1
    assert features[0].get(f"{A}required") == "false"

    # 不同的 required 视为另一条声明
    assert editor.add_uses_feature("android.hardware.camera", True)
    assert len(_root(path).findall("uses-feature")) == 2


def test_update_activity_attribute_sets_and_replaces(tmp_path) -> None:
    path = _project(tmp_path)
    editor = ManifestEditor(str(tmp_path))

    assert editor.update_activity_attribute("android:screenOrientation", "portrait")
    activity = _root(path).find("application/activity")
    assert activity.get(f"{A}screenOrientation") == "portrait"

    assert editor.update_activity_attribute("android:screenOrientation", "landscape")
    activity = _root(path).find("application/activity")
    assert activity.get(f"{A}screenOrientation") == "landscape"
    assert activity.get(f"{A}launchMode") == "singleTask"


def test_update_activity_attribute_unknown_activity_does_not_write(tmp_path, capsys) -> None:
    path = _project(tmp_path)
    before = path.read_bytes()

    ok = ManifestEditor(str(tmp_path)).update_activity_attribute(
        "android:screenOrientation", "portrait", activity_name=".Missing"
    )

    assert ok is False
    assert path.read_bytes() == before
    assert "activity not found: .Missing" in capsys.readouterr().out


def test_add_category_to_launcher_intent_filter(tmp_path) -> None:
    path = _project(tmp_path)
    editor = ManifestEditor(str(tmp_path))

    assert editor.add_category_to_intent_filter("android.intent.category.DEFAULT")
    assert editor.add_category_to_intent_filter("android.intent.category.DEFAULT")

    intent_filter = _root(path).find("application/activity/intent-filter")
    assert _names(intent_filter, "category") == [
        "android.intent.category.LAUNCHER",
        "android.intent.category.DEFAULT",
    ]


def test_add_category_without_matching_filter_returns_false(tmp_path) -> None:
    path = _project(tmp_path)
    before = path.read_bytes()

    ok = ManifestEditor(str(tmp_path)).add_category_to_intent_filter(
        "android.intent.category.BROWSABLE",
        filter_criteria={"action": "android.intent.action.VIEW"},
    )

    assert ok is False
    assert path.read_bytes() == before


def test_add_data_to_intent_filter_matches_full_attribute_map(tmp_path) -> None:
    text = MANIFEST.replace(
        "</intent-filter>",
        "</intent-filter>\n"
        "            <intent-filter>\n"
        '                <action android:name="android.intent.action.VIEW" />\n'
        '                <category android:name="android.intent.category.BROWSABLE" />\n'
        "            </intent-filter>",
    )
    path = _project(tmp_path, text)
    editor = ManifestEditor(str(tmp_path))
    criteria = {"action": "android.intent.action.VIEW"}

    assert editor.add_data_to_intent_filter(
        {"android:scheme": "myapp", "android:host": "open"}, filter_criteria=criteria
    )
    assert editor.add_data_to_intent_filter(
        {"android:scheme": "myapp", "android:host": "open"}, filter_criteria=criteria
    )
    assert editor.add_data_to_intent_filter({"android:scheme": "myapp"}, filter_criteria=criteria)

    filters = _root(path).findall("application/activity/intent-filter")
    assert filters[0].findall("data") == []
    data = filters[1].findall("data")
    assert [(d.get(f"{A}scheme"), d.get(f"{A}host")) for d in data] == [
        ("myapp", "open"),
        ("myapp", None),
    ]


def test_multiple_activities_are_searched(tmp_path) -> None:
    text = MANIFEST.replace(
        "    </application>",
        '        <activity android:name=".SecondActivity" />\n    </application>',
    )
    path = _project(tmp_path, text)

    assert ManifestEditor(str(tmp_path)).update_activity_attribute(
        "android:exported", "false", activity_name=".SecondActivity"
    )

    activities = _root(path).findall("application/activity")
    assert activities[0].get(f"{A}exported") == "true"
    assert activities[1].get(f"{A}exported") == "false"


def test_missing_manifest_returns_false(tmp_path, capsys) -> None:
    assert ManifestEditor(str(tmp_path)).add_permission("android.permission.CAMERA") is False
    assert "AndroidManifest.xml not found" in capsys.readouterr().err


def test_unparsable_manifest_is_left_untouched(tmp_path) -> None:
    path = _project(tmp_path, "<manifest><application>")

    assert ManifestEditor(str(tmp_path)).add_permission("android.permission.CAMERA") is False
    assert path.read_text(encoding="utf-8") == "<manifest><application>"


def test_comments_survive_edits(tmp_path) -> None:
    path = _project(tmp_path)

    assert ManifestEditor(str(tmp_path)).add_permission("android.permission.CAMERA")

    assert "<!-- Permissions -->" in path.read_text(encoding="utf-8")


def test_undeclared_attribute_prefix_returns_false_without_writing(tmp_path, capsys) -> None:
    path = _project(tmp_path)
    before = path.read_bytes()

    ok = ManifestEditor(str(tmp_path)).add_data_to_intent_filter({"tools:ignore": "x"})

    assert ok is False
    assert path.read_bytes() == before
    assert "unknown namespace prefix: tools" in capsys.readouterr().err


def test_existing_repeated_nodes_are_all_considered(tmp_path) -> None:
    text = MANIFEST.replace(
        '    <uses-permission android:name="android.permission.INTERNET" />\n',
        '    <uses-permission android:name="android.permission.INTERNET" />\n'
        '    <uses-permission android:name="android.permission.CAMERA" />\n',
    )
    path = _project(tmp_path, text)
    editor = ManifestEditor(str(tmp_path))

    assert editor.add_permission("android.permission.CAMERA")
    assert editor.add_permission("android.permission.VIBRATE")

    assert _names(_root(path), "uses-permission") == [
        "android.permission.INTERNET",
        "android.permission.CAMERA",
        "android.permission.VIBRATE",
    ]


def test_noop_edit_keeps_document_equivalent(tmp_path) -> None:
    path = _project(tmp_path)
    parser = etree.XMLParser(remove_blank_text=True)
    before = etree.tostring(etree.parse(str(path), parser), method="c14n")

    # 权限已存在，写回后的文档与原文档等价
    assert ManifestEditor(str(tmp_path)).add_permission("android.permission.INTERNET")

    after = etree.tostring(etree.parse(str(path), parser), method="c14n")
    assert after == before
