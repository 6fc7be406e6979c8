"""
`variables.gradle` 中 `ext { ... }` 块的键值更新工具。

只改动块内目标键所在的一行（或在块末尾插入一行），块外内容与块内其它行保持原样。
"""

from __future__ import annotations

import os
import re

from . import log

INDENT = "    "


def variables_gradle_path(android_dir: str) -> str:
    return os.path.join(android_dir, "variables.gradle")


def find_block(content: str, block: str = "ext") -> tuple[int, int] | None:
    """返回 `block {` 之后内容起点与匹配 `}` 的下标；未找到返回 `None`。

    按花括号深度寻找配对的右括号，引号内的括号不计入深度。
    """
    m = re.search(rf"(?<![\w.]){re.escape(block)}\s*\{{", content)
    if not m:
        return None
    start = m.end()
    depth = 1
    quote = ""
    i = start
    while i < len(content):
        ch = content[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return start, i
        i += 1
    return None


def _key_regex(key: str) -> re.Pattern[str]:
    # `key = 'v'` / `key = "v"` / `key = v`，值后到行尾只允许空白
    return re.compile(
        rf"(^|\s)({re.escape(key)})\s*=\s*(['\"]?)([^'\"\n]*?)\3(?=[ \t]*$)",
        re.MULTILINE,
    )


def upsert_block_value(content: str, key: str, value: str, block: str = "ext") -> str | None:
    """在文本中更新或插入 `key = 'value'`，返回新文本；块不存在时返回 `None`。"""
    span = find_block(content, block)
    if span is None:
        return None
    start, end = span
    inner = content[start:end]
    new_line = f"{key} = '{value}'"

    m = _key_regex(key).search(inner)
    if m:
        inner = inner[: m.start()] + m.group(1) + new_line + inner[m.end():]
    else:
        lines = inner.split("\n")
        insert_at = 1 if len(lines) > 1 else len(lines)
        for i in range(len(lines) - 1, -1, -1):
            if lines[i].strip():
                insert_at = i + 1
                break
        lines[insert_at - 1] = lines[insert_at - 1].rstrip()
        lines.insert(insert_at, f"{INDENT}{new_line}")
        if insert_at == len(lines) - 1:
            # 插入行后面紧跟 `}`，另起一行放置右括号
            lines.append("")
        inner = "\n".join(lines)

    return content[:start] + inner + content[end:]


def _current_value(content: str, key: str, block: str) -> str | None:
    span = find_block(content, block)
    if span is None:
        return None
    m = _key_regex(key).search(content[span[0]:span[1]])
    return m.group(4) if m else None


def upsert_variable(file_path: str, key: str, value: str, block: str = "ext") -> bool:
    """更新或添加 Gradle 变量文件 `ext` 块中的键值，成功返回 True。"""
    if not os.path.isfile(file_path):
        log.error(f"file not found: {file_path}")
        return False

    with open(file_path, "r", encoding="utf-8") as f:
        content = f.read()

    old_value = _current_value(content, key, block)
    updated = upsert_block_value(content, key, value, block)
    if updated is None:
        log.error(f"'{block} {{ ... }}' block not found in {file_path}")
        return False

    with open(file_path, "w", encoding="utf-8") as f:
        f.write(updated)

    if old_value is None:
        log.info(f"added '{key}' = '{value}' to {os.path.basename(file_path)}")
    else:
        log.info(f"updated '{key}': '{old_value}' -> '{value}' in {os.path.basename(file_path)}")
    return True
