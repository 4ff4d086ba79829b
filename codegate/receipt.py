"""Reader for the receipt produced when the generator tool is built."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

ENGINE_DIR_VARIABLE = "$(EngineDir)"
PROJECT_DIR_VARIABLE = "$(ProjectDir)"


class ReceiptError(RuntimeError):
    """Raised when a receipt is missing required structure."""


class BuildProductType(str, Enum):
    EXECUTABLE = "Executable"
    DYNAMIC_LIBRARY = "DynamicLibrary"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: object) -> "BuildProductType":
        for member in cls:
            if isinstance(value, str) and value.lower() == member.value.lower():
                return member
        return cls.OTHER


@dataclass
class BuildProduct:
    path: str
    type: BuildProductType
    version: Optional[int] = None

    @property
    def is_binary(self) -> bool:
        return self.type in (BuildProductType.EXECUTABLE, BuildProductType.DYNAMIC_LIBRARY)


@dataclass
class TargetReceipt:
    """Build products recorded for one target/platform/configuration."""

    target_name: str
    platform: str
    configuration: str
    build_products: List[BuildProduct] = field(default_factory=list)

    def expand_path_variables(self, engine_dir: Path, project_dir: Path) -> None:
        for product in self.build_products:
            product.path = (
                product.path.replace(ENGINE_DIR_VARIABLE, str(engine_dir))
                .replace(PROJECT_DIR_VARIABLE, str(project_dir))
            )


def read_receipt(path: Path) -> TargetReceipt:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ReceiptError(f"Unable to read receipt {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ReceiptError(f"Receipt {path} must contain an object")

    products_payload = data.get("BuildProducts", [])
    if not isinstance(products_payload, list):
        raise ReceiptError(f"Receipt {path} has malformed BuildProducts")

    products: List[BuildProduct] = []
    for payload in products_payload:
        if not isinstance(payload, dict) or not isinstance(payload.get("Path"), str):
            raise ReceiptError(f"Receipt {path} contains a build product without a path")
        version = payload.get("Version")
        products.append(
            BuildProduct(
                path=payload["Path"],
                type=BuildProductType.parse(payload.get("Type")),
                version=version if isinstance(version, int) else None,
            )
        )

    return TargetReceipt(
        target_name=str(data.get("TargetName", "")),
        platform=str(data.get("Platform", "")),
        configuration=str(data.get("Configuration", "")),
        build_products=products,
    )


__all__ = [
    "BuildProduct",
    "BuildProductType",
    "ReceiptError",
    "TargetReceipt",
    "read_receipt",
]
