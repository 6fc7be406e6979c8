"""
对 macOS `/usr/bin/security` 的轻量封装：临时钥匙串的创建、导入证书与清理。

使用独立的临时钥匙串导入 P12，避免污染登录钥匙串；退出上下文时总会删除。
"""

from __future__ import annotations

import os
import time
from types import TracebackType

from . import log
from .pipeline_utils import run_cmd

SECURITY = "/usr/bin/security"


def _security(*args: str) -> None:
    run_cmd([SECURITY, *args], stream=False)


def default_keychain_path() -> str:
    name = f"temp_capacitor_keychain_{int(time.time() * 1000)}.keychain"
    return os.path.join(os.path.expanduser("~"), "Library", "Keychains", name)


class TemporaryKeychain:
    """`with TemporaryKeychain(password) as kc: kc.import_p12(...)`"""

    def __init__(self, password: str, path: str = "") -> None:
        self.password = password
        self.path = path or default_keychain_path()
        self._created = False

    def __enter__(self) -> "TemporaryKeychain":
        log.step(f"Creating temporary keychain: {self.path}")
        _security("create-keychain", "-p", self.password, self.path)
        self._created = True
        try:
            _security("unlock-keychain", "-p", self.password, self.path)
            # 放到搜索列表最前，保证 xcodebuild 优先找到导入的证书
            _security("list-keychains", "-s", self.path, "login.keychain")
        except BaseException:
            self.delete()
            raise
        return self

    def import_p12(self, p12_path: str, p12_password: str) -> None:
        log.step("Importing signing certificate")
        _security(
            "import", p12_path,
            "-P", p12_password,
            "-k", self.path,
            "-A",
            "-T", "/usr/bin/codesign",
            "-T", "/usr/bin/security",
        )
        # 设置分区列表，避免签名时弹出授权对话框
        _security(
            "set-key-partition-list", "-S", "apple-tool:,apple:", "-s",
            "-k", self.password, self.path,
        )
        log.info("certificate imported")

    def delete(self) -> None:
        if not self._created:
            return
        try:
            _security("delete-keychain", self.path)
            log.info(f"temporary keychain deleted: {self.path}")
        except RuntimeError as e:
            log.error(f"failed to delete temporary keychain: {e}")
        self._created = False

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.delete()
