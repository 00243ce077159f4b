"""OpenSSO identity subpackage.

* **IdentityClient** -- token validation, attribute retrieval, and
  cookie-name discovery against the identity REST services.
* **decode_attributes** / **AttributeMap** -- the attribute dump
  decoder and its case-insensitive result.
"""
from __future__ import annotations

from opensso.identity.attributes import AttributeMap, AttributeValue, decode_attributes
from opensso.identity.client import IdentityClient, mask_token

__all__ = [
    "AttributeMap",
    "AttributeValue",
    "IdentityClient",
    "decode_attributes",
    "mask_token",
]
