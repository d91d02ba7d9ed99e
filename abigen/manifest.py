"""ABI manifest construction and canonical item signatures."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from .logging import get_logger
from .models import AbiManifest, GeneratedModule
from .modules import MODULE_EXTENSION

_CONST_SUFFIX = "] as const;"

logger = get_logger("manifest")


class AbiItemKind(str, Enum):
    """Recognised ABI item types."""

    FUNCTION = "function"
    EVENT = "event"
    ERROR = "error"
    CONSTRUCTOR = "constructor"
    FALLBACK = "fallback"
    RECEIVE = "receive"
    UNKNOWN = "unknown"

    @classmethod
    def of(cls, item: Mapping[str, Any]) -> "AbiItemKind":
        raw = item.get("type")
        if isinstance(raw, str):
            try:
                kind = cls(raw)
            except ValueError:
                return cls.UNKNOWN
            return kind
        return cls.UNKNOWN


def format_param_type(param: Mapping[str, Any], include_indexed: bool = False) -> str:
    """Format one ABI parameter type, expanding tuples recursively.

    ``tuple`` components become ``(type1,type2)`` and array suffixes such as
    ``[]`` or ``[3]`` are kept. Only top-level event parameters carry the
    `` indexed`` marker.
    """
    param_type = str(param.get("type", ""))
    if param_type == "tuple" or param_type.startswith("tuple["):
        suffix = param_type[len("tuple"):]
        components = param.get("components") or []
        inner = ",".join(format_param_type(component, False) for component in components)
        result = f"({inner}){suffix}"
    else:
        result = param_type

    if include_indexed and param.get("indexed"):
        result += " indexed"
    return result


def _params(params: Optional[Iterable[Mapping[str, Any]]], include_indexed: bool = False) -> str:
    return ",".join(format_param_type(param, include_indexed) for param in params or [])


def _with_mutability(signature: str, item: Mapping[str, Any]) -> str:
    mutability = item.get("stateMutability")
    if isinstance(mutability, str) and mutability:
        return f"{signature} {mutability}"
    return signature


def format_abi_item_signature(item: Mapping[str, Any]) -> str | None:
    """Return a deterministic signature for an ABI item.

    Parameter names are left out so renames do not show up as changes.
    Unsupported item types return ``None``.
    """
    kind = AbiItemKind.of(item)
    name = item.get("name", "")
    inputs = item.get("inputs")

    if kind is AbiItemKind.FUNCTION:
        signature = _with_mutability(f"function {name}({_params(inputs)})", item)
        outputs = _params(item.get("outputs"))
        if outputs:
            signature += f" returns ({outputs})"
        return signature
    if kind is AbiItemKind.EVENT:
        return f"event {name}({_params(inputs, include_indexed=True)})"
    if kind is AbiItemKind.ERROR:
        return f"error {name}({_params(inputs)})"
    if kind is AbiItemKind.CONSTRUCTOR:
        return _with_mutability(f"constructor({_params(inputs)})", item)
    if kind is AbiItemKind.FALLBACK:
        return "fallback()"
    if kind is AbiItemKind.RECEIVE:
        return "receive()"
    return None


def parse_abi_from_module_content(content: str) -> List[Any] | None:
    """Recover the ABI array from generated module source."""
    start = content.find("[")
    end = content.rfind(_CONST_SUFFIX)
    if start == -1 or end == -1 or end < start:
        return None
    try:
        parsed = json.loads(content[start : end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None


def signatures_for(abi: Iterable[Any]) -> List[str]:
    """Return the sorted, de-duplicated signatures of an ABI."""
    signatures = set()
    for item in abi:
        if not isinstance(item, Mapping):
            continue
        signature = format_abi_item_signature(item)
        if signature is not None:
            signatures.add(signature)
    return sorted(signatures)


def export_path(module: GeneratedModule) -> str:
    path = module.module_rel_path
    if path.endswith(MODULE_EXTENSION):
        return path[: -len(MODULE_EXTENSION)]
    return path


def build_manifest(modules: Iterable[GeneratedModule]) -> AbiManifest:
    """Map each module's export path to its sorted ABI signatures."""
    entries = {}
    for module in modules:
        abi = parse_abi_from_module_content(module.module_content)
        if abi is None:
            logger.debug("Could not parse ABI from %s", module.module_rel_path)
            continue
        entries[export_path(module)] = signatures_for(abi)
    return {key: entries[key] for key in sorted(entries)}


__all__ = [
    "AbiItemKind",
    "build_manifest",
    "export_path",
    "format_abi_item_signature",
    "format_param_type",
    "parse_abi_from_module_content",
    "signatures_for",
]
