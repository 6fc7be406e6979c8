"""
`AndroidManifest.xml` 的幂等修改工具。

每个操作都会重新读取清单、在内存中修改、整体写回；重复调用同一操作不会产生重复节点。
找不到目标节点（application / activity / intent-filter）时只记录日志并返回 False，不写文件。
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping

from lxml import etree

from . import log

ANDROID_NS = "http://schemas.android.com/apk/res/android"
ACTION_MAIN = "android.intent.action.MAIN"
CATEGORY_LAUNCHER = "android.intent.category.LAUNCHER"
DEFAULT_ACTIVITY = ".MainActivity"

FilterCriteria = Mapping[str, str]


def manifest_path_for(project_root: str) -> str:
    return os.path.join(project_root, "android", "app", "src", "main", "AndroidManifest.xml")


def children(node: etree._Element, tag: str) -> list[etree._Element]:
    """返回指定标签的全部直接子节点，单个或多个都以列表形式返回。"""
    return node.findall(tag)


def qualify(node: etree._Element, attr: str) -> str:
    """把 `android:name` 形式的属性名转换为 lxml 使用的 `{namespace}name`。"""
    if ":" not in attr:
        return attr
    prefix, local = attr.split(":", 1)
    uri = node.nsmap.get(prefix)
    if uri is None and prefix == "android":
        uri = ANDROID_NS
    if uri is None:
        raise ValueError(f"unknown namespace prefix: {prefix}")
    return f"{{{uri}}}{local}"


def _prefixed(node: etree._Element, qname: str) -> str:
    """`qualify` 的逆操作，用于比较完整属性表。"""
    if not qname.startswith("{"):
        return qname
    uri, local = qname[1:].split("}", 1)
    for prefix, ns in node.nsmap.items():
        if ns == uri and prefix:
            return f"{prefix}:{local}"
    return qname


def _attr(node: etree._Element, attr: str) -> str | None:
    return node.get(qualify(node, attr))


def _has_name(node: etree._Element, tag: str, name: str) -> bool:
    return any(_attr(c, "android:name") == name for c in children(node, tag))


def _as_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in ("true", "1"):
        return True
    if v in ("false", "0"):
        return False
    return None


def _append_after_siblings(parent: etree._Element, tag: str, attrs: Mapping[str, str]) -> etree._Element:
    """新建子节点：有同名兄弟时放在最后一个之后，否则追加到末尾。"""
    existing = children(parent, tag)
    # 先挂到树上再设置属性，命名空间前缀沿用文档中已声明的 `android`
    node = etree.SubElement(parent, tag)
    for k, v in attrs.items():
        node.set(qualify(parent, k), v)
    if existing:
        existing[-1].addnext(node)
    return node


def find_activity(root: etree._Element, activity_name: str) -> etree._Element | None:
    application = root.find("application")
    if application is None:
        log.info("<application> not found in manifest")
        return None
    for activity in children(application, "activity"):
        if _attr(activity, "android:name") == activity_name:
            return activity
    log.info(f"activity not found: {activity_name}")
    return None


def _filter_matches(intent_filter: etree._Element, criteria: FilterCriteria) -> bool:
    action = criteria.get("action")
    if action and not _has_name(intent_filter, "action", action):
        return False
    category = criteria.get("category")
    if category and not _has_name(intent_filter, "category", category):
        return False
    return True


def find_intent_filter(
    activity: etree._Element, criteria: FilterCriteria | None = None
) -> etree._Element | None:
    """按条件查找 intent-filter；未给条件时查找启动器（MAIN + LAUNCHER）过滤器。"""
    filters = children(activity, "intent-filter")
    if not filters:
        log.info("no intent-filter in target activity")
        return None
    if criteria is None:
        criteria = {"action": ACTION_MAIN, "category": CATEGORY_LAUNCHER}
    for intent_filter in filters:
        if _filter_matches(intent_filter, criteria):
            return intent_filter
    log.info("no intent-filter matches the given criteria")
    return None


class ManifestEditor:
    """绑定到单个项目的清单编辑器。"""

    def __init__(self, project_root: str) -> None:
        self.project_root = project_root
        self.manifest_path = manifest_path_for(project_root)
        log.debug(f"manifest editor bound to {self.manifest_path}")

    def _modify(self, modifier: Callable[[etree._Element], bool]) -> bool:
        """读取、修改并写回清单；`modifier` 返回 False 表示未找到目标，不写文件。"""
        path = self.manifest_path
        if not os.path.isfile(path):
            log.error(f"AndroidManifest.xml not found: {path}")
            return False

        parser = etree.XMLParser(remove_blank_text=True)
        try:
            tree = etree.parse(path, parser)
        except etree.XMLSyntaxError as e:
            log.error(f"failed to parse {path}: {e}")
            return False

        root = tree.getroot()
        try:
            changed = modifier(root)
        except ValueError as e:
            log.error(f"invalid manifest edit on {path}: {e}")
            return False
        if not changed:
            return False

        etree.indent(root, space="    ")
        try:
            tree.write(path, encoding="utf-8", xml_declaration=True)
        except OSError as e:
            log.error(f"failed to write {path}: {e}")
            return False
        log.debug(f"AndroidManifest.xml written: {path}")
        return True

    def add_permission(self, name: str) -> bool:
        """添加 `uses-permission`，同名权限已存在时跳过。"""

        def modifier(root: etree._Element) -> bool:
            if _has_name(root, "uses-permission", name):
                log.info(f"permission already present, skipped: {name}")
            else:
                _append_after_siblings(root, "uses-permission", {"android:name": name})
                log.info(f"added permission: {name}")
            return True

        return self._modify(modifier)

    def add_uses_feature(self, name: str, required: bool | str) -> bool:
        """添加 `uses-feature`；名称与 required 都相同的条目已存在时跳过。"""
        want = _as_bool(required)
        required_text = str(required).lower()

        def modifier(root: etree._Element) -> bool:
            for feature in children(root, "uses-feature"):
                if (
                    _attr(feature, "android:name") == name
                    and _as_bool(_attr(feature, "android:required")) == want
                ):
                    log.info(f"uses-feature already present, skipped: {name} (required={required_text})")
                    return True
            _append_after_siblings(
                root,
                "uses-feature",
                {"android:name": name, "android:required": required_text},
            )
            log.info(f"added uses-feature: {name} (required={required_text})")
            return True

        return self._modify(modifier)

    def update_activity_attribute(
        self, attribute_name: str, new_value: str, activity_name: str = DEFAULT_ACTIVITY
    ) -> bool:
        """更新指定 Activity 的属性值（值相同则不变）。"""

        def modifier(root: etree._Element) -> bool:
            activity = find_activity(root, activity_name)
            if activity is None:
                return False
            key = qualify(activity, attribute_name)
            old_value = activity.get(key)
            if old_value != new_value:
                activity.set(key, new_value)
                log.info(f"updated {activity_name} {attribute_name}: '{old_value}' -> '{new_value}'")
            else:
                log.info(f"{activity_name} {attribute_name} already '{new_value}'")
            return True

        return self._modify(modifier)

    def add_category_to_intent_filter(
        self,
        category_name: str,
        filter_criteria: FilterCriteria | None = None,
        activity_name: str = DEFAULT_ACTIVITY,
    ) -> bool:
        """向目标 intent-filter 添加 category（已存在则跳过）。"""

        def modifier(root: etree._Element) -> bool:
            activity = find_activity(root, activity_name)
            if activity is None:
                return False
            intent_filter = find_intent_filter(activity, filter_criteria)
            if intent_filter is None:
                return False
            if _has_name(intent_filter, "category", category_name):
                log.info(f"category already present, skipped: {category_name}")
            else:
                _append_after_siblings(intent_filter, "category", {"android:name": category_name})
                log.info(f"added category to intent-filter: {category_name}")
            return True

        return self._modify(modifier)

    def add_data_to_intent_filter(
        self,
        data_attributes: Mapping[str, str],
        filter_criteria: FilterCriteria | None = None,
        activity_name: str = DEFAULT_ACTIVITY,
    ) -> bool:
        """向目标 intent-filter 添加 data 节点；属性表完全一致的节点已存在时跳过。"""
        want = dict(data_attributes)

        def modifier(root: etree._Element) -> bool:
            activity = find_activity(root, activity_name)
            if activity is None:
                return False
            intent_filter = find_intent_filter(activity, filter_criteria)
            if intent_filter is None:
                return False
            for data in children(intent_filter, "data"):
                have = {_prefixed(data, k): v for k, v in data.attrib.items()}
                if have == want:
                    log.info(f"data already present, skipped: {want}")
                    return True
            _append_after_siblings(intent_filter, "data", want)
            log.info(f"added data to intent-filter: {want}")
            return True

        return self._modify(modifier)
