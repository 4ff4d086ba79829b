"""Validity checks for the generator tool binaries."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import BuildConfig
from .logging import get_logger
from .platform import receipt_path
from .receipt import BuildProduct, BuildProductType, ReceiptError, TargetReceipt, read_receipt

NEVER_BUILT = math.inf

VersionResolver = Callable[[BuildProduct], int]


@dataclass
class ToolStatus:
    """Whether the tool is usable, and the newest write time of its binaries."""

    valid: bool
    timestamp: float


def recorded_version(product: BuildProduct) -> int:
    """Default resolver: the API version recorded in the receipt, or -1 when absent."""
    return product.version if product.version is not None else -1


class ToolValidityChecker:
    """Reads the tool's receipt and verifies the binaries it lists.

    Library versions come from ``version_resolver``. The default,
    :func:`recorded_version`, trusts the version written into the receipt and
    never opens the binary, so a library replaced on disk without updating the
    receipt goes unnoticed. Pass a resolver that reads the API version embedded
    in each library when the host platform exposes one.
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        version_resolver: VersionResolver | None = None,
        receipt_locator: Callable[[BuildConfig], Path] | None = None,
    ) -> None:
        self.config = config
        self._version_resolver = version_resolver or recorded_version
        self._receipt_locator = receipt_locator or _default_receipt_path
        self.logger = get_logger("tool")

    def check(self) -> ToolStatus:
        path = self._receipt_locator(self.config)
        receipt = self._load_receipt(path)
        if receipt is None:
            return ToolStatus(valid=False, timestamp=NEVER_BUILT)

        engine_root = self.config.engine_root
        receipt.expand_path_variables(engine_root, engine_root)

        if not self._binaries_exist(receipt) or not self._library_versions_match(receipt):
            return ToolStatus(valid=False, timestamp=NEVER_BUILT)

        return ToolStatus(valid=True, timestamp=self._latest_write_time(receipt))

    def _load_receipt(self, path: Path) -> Optional[TargetReceipt]:
        if not path.is_file():
            self.logger.debug("No receipt for %s at %s", self.config.tool.name, path)
            return None
        try:
            return read_receipt(path)
        except ReceiptError as exc:
            self.logger.debug("Ignoring unreadable receipt: %s", exc)
            return None

    def _binaries_exist(self, receipt: TargetReceipt) -> bool:
        exist = True
        for product in receipt.build_products:
            if product.is_binary and not os.path.isfile(product.path):
                self.logger.warning("Missing binary: %s", product.path)
                exist = False
        return exist

    def _library_versions_match(self, receipt: TargetReceipt) -> bool:
        versions: List[Tuple[str, int]] = [
            (product.path, self._version_resolver(product))
            for product in receipt.build_products
            if product.type is BuildProductType.DYNAMIC_LIBRARY
        ]
        if not versions or all(version == versions[0][1] for _, version in versions):
            return True

        self.logger.warning("Detected mismatch in binary versions:")
        for path, version in versions:
            self.logger.warning("  %s has API version %d", path, version)
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
        return False

    @staticmethod
    def _latest_write_time(receipt: TargetReceipt) -> float:
        latest = -math.inf
        for product in receipt.build_products:
            if product.is_binary:
                latest = max(latest, os.path.getmtime(product.path))
        return latest


def _default_receipt_path(config: BuildConfig) -> Path:
    return receipt_path(config.engine_root, config.host_platform, config.tool.name)


__all__ = ["NEVER_BUILT", "ToolStatus", "ToolValidityChecker", "recorded_version"]
