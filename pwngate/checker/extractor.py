"""Credential extraction from pre-update-password action events.

The identity provider posts an envelope like::

    {
      "actionType": "PRE_UPDATE_PASSWORD",
      "event": {
        "user": {
          "id": "...",
          "updatingCredential": {
            "type": "PASSWORD",
            "format": "HASH",
            "value": "cGFzc3dvcmQ="
          }
        }
      }
    }

``format: "HASH"`` is the action framework's name for a base64-encoded value.
It is NOT a cryptographic hash: the value is decoded back to the original
password bytes before fingerprinting. ``format: "PLAIN"`` values are used as
UTF-8 text.

Older deployments of the check endpoint accepted ``{"password": {"newPassword": ...}}``;
that envelope is still honoured as a plain credential when no
``updatingCredential`` is present.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Mapping

from pwngate.constants import PRE_UPDATE_PASSWORD_ACTION
from pwngate.errors import MalformedCredential, MalformedPayload, MissingCredential
from pwngate.models.credential import Credential, CredentialEncoding

PASSWORD_CREDENTIAL_TYPE = "PASSWORD"

FORMAT_PLAIN = "PLAIN"
FORMAT_ENCODED = "HASH"  # base64 text encoding, see module docstring


def extract_credential(payload: Any) -> Credential:
    """Locate and decode the credential under change.

    Args:
        payload: Parsed JSON request body.

    Returns:
        Credential holding the decoded password bytes.

    Raises:
        MalformedPayload:    payload is not an object, or not a pre-update-password event.
        MissingCredential:   no usable PASSWORD credential in the payload.
        MalformedCredential: unknown ``format`` or invalid base64.
    """
    if not isinstance(payload, Mapping):
        raise MalformedPayload("Request body must be a JSON object")

    action_type = payload.get("actionType")
    if action_type is not None and action_type != PRE_UPDATE_PASSWORD_ACTION:
        raise MalformedPayload(f"Unsupported actionType: {action_type!r}")

    credential = _dig(payload, "event", "user", "updatingCredential")
    if credential is None:
        legacy = _dig(payload, "password", "newPassword")
        if isinstance(legacy, str) and legacy:
            return Credential(value=_encode_utf8(legacy))
        raise MissingCredential("event.user.updatingCredential is missing")

    if not isinstance(credential, Mapping):
        raise MissingCredential("event.user.updatingCredential is not an object")

    if credential.get("type") != PASSWORD_CREDENTIAL_TYPE:
        raise MissingCredential("updatingCredential is not a PASSWORD credential")

    value = credential.get("value")
    if not isinstance(value, str) or not value:
        raise MissingCredential("updatingCredential.value is missing or empty")

    fmt = credential.get("format", FORMAT_PLAIN)
    if fmt == FORMAT_PLAIN:
        return Credential(value=_encode_utf8(value), encoding=CredentialEncoding.PLAIN)
    if fmt == FORMAT_ENCODED:
        return Credential(value=_decode_base64(value), encoding=CredentialEncoding.BASE64)

    raise MalformedCredential(f"Unsupported credential format: {fmt!r}")


def _encode_utf8(value: str) -> bytes:
    try:
        return value.encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates survive json.loads but have no UTF-8 form.
        raise MalformedCredential("Credential value is not valid UTF-8 text") from None


def _decode_base64(value: str) -> bytes:
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        # The exception text can echo input characters; drop it.
        raise MalformedCredential("Credential value is not valid base64") from None
    if not decoded:
        raise MissingCredential("updatingCredential.value decodes to an empty password")
    return decoded


def _dig(data: Mapping, *keys: str) -> Any:
    node: Any = data
    for key in keys:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node
