"""
Encoding and decoding of catalog documents.

The GitHub contents API transports files as base64. Decoded content is parsed
with the standard ``json`` module, which turns integer literals into Python's
arbitrary-precision ``int``; counts such as ``12345678901234567890`` therefore
survive decode -> reconcile -> encode digit for digit.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from dlsync.core.catalog.models import CatalogDocument, DatasetSpec
from dlsync.core.exceptions import FetchError

INDENT = 4


def decode_content(content: str, path: str = "") -> bytes:
    """
    Decode the base64 ``content`` field of a contents API response.

    GitHub wraps the base64 text at 60 columns, so whitespace is removed
    before strict decoding.

    Raises:
        FetchError: If the content is not valid base64
    """
    compact = "".join(content.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FetchError(f"Invalid base64 content for {path}", path=path) from e


def encode_content(raw: bytes) -> str:
    """Base64-encode document bytes for a contents API update."""
    return base64.b64encode(raw).decode("ascii")


def decode_document(raw: bytes, spec: DatasetSpec) -> CatalogDocument:
    """
    Parse document bytes into a CatalogDocument.

    Only the fields the reconciler touches are checked: the root must be an
    object holding a list under ``spec.collection_field``, each entry must hold
    an object under ``spec.item_field``, and each record must carry a string
    ``uuid``.

    Raises:
        FetchError: If the bytes are not UTF-8 JSON of the expected shape
    """
    try:
        root = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise FetchError(f"{spec.path} is not valid UTF-8", path=spec.path) from e
    except json.JSONDecodeError as e:
        raise FetchError(
            f"{spec.path} is not valid JSON: {e.msg}",
            path=spec.path,
            line=e.lineno,
            column=e.colno,
        ) from e

    if not isinstance(root, dict):
        raise FetchError(f"{spec.path} does not contain a JSON object", path=spec.path)

    items = root.get(spec.collection_field)
    if not isinstance(items, list):
        raise FetchError(
            f"{spec.path} has no '{spec.collection_field}' list",
            path=spec.path,
        )

    for index, item in enumerate(items):
        _check_entry(item, index, spec)

    return CatalogDocument(root=root, spec=spec)


def _check_entry(item: Any, index: int, spec: DatasetSpec) -> None:
    where = f"{spec.collection_field}[{index}]"
    if not isinstance(item, dict) or not isinstance(item.get(spec.item_field), dict):
        raise FetchError(
            f"{spec.path}: {where} has no '{spec.item_field}' object",
            path=spec.path,
            index=index,
        )
    if not isinstance(item[spec.item_field].get("uuid"), str):
        raise FetchError(
            f"{spec.path}: {where}.{spec.item_field} has no string 'uuid'",
            path=spec.path,
            index=index,
        )


def encode_document(document: CatalogDocument) -> bytes:
    """Serialize a document with fixed four-space indentation as UTF-8."""
    return json.dumps(document.root, indent=INDENT, ensure_ascii=False).encode("utf-8")


__all__ = [
    "INDENT",
    "decode_content",
    "encode_content",
    "decode_document",
    "encode_document",
]
