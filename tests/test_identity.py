"""Tests for the OpenSSO identity layer.

Covers:

1. **IdentityClient** -- request shape per operation, success criteria,
   401/403/other status handling, empty-token guard, cookie-name
   discovery.
2. **decode_attributes** -- grammar, flushing, ignored lines,
   single-value collapsing, case folding.
3. **AttributeMap** -- case-insensitive lookup, force-array views,
   defaults for unknown names.
"""
from __future__ import annotations

import pytest
from conftest import FakeTransport, http_response

from opensso.core.errors import (
    ConnectionFailed,
    EmptyAttributeName,
    EmptyToken,
    Forbidden,
    MalformedResponse,
    NotAuthenticated,
    UnexpectedStatus,
)
from opensso.core.types import Endpoint
from opensso.identity.attributes import AttributeMap, decode_attributes
from opensso.identity.client import IdentityClient, mask_token

ENDPOINT = Endpoint.from_url("https://sso.example.com/opensso/identity/")


def _client(*responses: bytes | Exception) -> tuple[IdentityClient, FakeTransport]:
    transport = FakeTransport(*responses)
    return IdentityClient(ENDPOINT, transport), transport  # type: ignore[arg-type]


# ======================================================================
# IdentityClient
# ======================================================================


class TestValidateToken:
    def test_true_body_is_valid(self) -> None:
        client, transport = _client(http_response("200 OK", "boolean=true"))
        assert client.validate_token("AQIC5w+x/y=") is True
        assert transport.calls == [
            ("GET", "/opensso/identity/isTokenValid", "tokenid=AQIC5w%2Bx%2Fy%3D"),
        ]

    @pytest.mark.parametrize("body", ["boolean=false", "false", ""])
    def test_other_bodies_are_invalid(self, body: str) -> None:
        client, _ = _client(http_response("200 OK", body))
        assert client.validate_token("tok") is False

    def test_401_is_invalid_not_error(self) -> None:
        client, _ = _client(http_response("401 Unauthorized"))
        assert client.validate_token("tok") is False

    def test_403_raises_forbidden(self) -> None:
        client, _ = _client(http_response("403 Forbidden"))
        with pytest.raises(Forbidden) as exc_info:
            client.validate_token("tok")
        assert exc_info.value.status_code == 403

    def test_500_propagates_with_code(self) -> None:
        client, _ = _client(http_response("500 Internal Server Error"))
        with pytest.raises(UnexpectedStatus) as exc_info:
            client.validate_token("tok")
        assert exc_info.value.status_code == 500

    def test_transport_failure_propagates_unchanged(self) -> None:
        failure = ConnectionFailed("down", errno=111, strerror="refused")
        client, _ = _client(failure)
        with pytest.raises(ConnectionFailed) as exc_info:
            client.validate_token("tok")
        assert exc_info.value is failure

    def test_empty_token_makes_no_call(self) -> None:
        client, transport = _client()
        with pytest.raises(EmptyToken):
            client.validate_token("")
        assert transport.calls == []


class TestFetchAttributes:
    def test_returns_body(self) -> None:
        dump = "userdetails.attribute.name=cn\r\nuserdetails.attribute.value=Alice"
        client, transport = _client(http_response("200 OK", dump))
        assert client.fetch_attributes("tok en") == dump
        assert transport.calls == [("GET", "/opensso/identity/attributes", "subjectid=tok+en")]

    def test_empty_token_rejected(self) -> None:
        client, transport = _client()
        with pytest.raises(EmptyToken):
            client.fetch_attributes("")
        assert transport.calls == []

    def test_401_is_not_absorbed(self) -> None:
        client, _ = _client(http_response("401 Unauthorized"))
        with pytest.raises(NotAuthenticated):
            client.fetch_attributes("tok")


class TestDiscoverCookieName:
    def test_prefix_is_stripped(self) -> None:
        client, transport = _client(http_response("200 OK", "string=iPlanetDirectoryPro\n"))
        assert client.discover_cookie_name() == "iPlanetDirectoryPro"
        assert transport.calls == [("POST", "/opensso/identity/getCookieNameForToken", "")]

    def test_body_without_prefix_is_used_as_is(self) -> None:
        client, _ = _client(http_response("200 OK", "customSSO"))
        assert client.discover_cookie_name() == "customSSO"

    def test_empty_name_is_malformed(self) -> None:
        client, _ = _client(http_response("200 OK", "string="))
        with pytest.raises(MalformedResponse):
            client.discover_cookie_name()


def test_mask_token_never_reveals_whole_token() -> None:
    assert mask_token("") == "<empty>"
    assert mask_token("abc") == "***"
    assert mask_token("AQIC5wM2LY4Sfcz") == "AQIC5w..."


# ======================================================================
# decode_attributes
# ======================================================================


class TestDecodeAttributes:
    def test_single_and_multi_values(self) -> None:
        body = "\n".join(
            [
                "userdetails.token.id=AQIC",
                "userdetails.attribute.name=cn",
                "userdetails.attribute.value=Alice",
                "userdetails.attribute.name=memberOf",
                "userdetails.attribute.value=staff",
                "userdetails.attribute.value=admins",
            ]
        )
        attributes = decode_attributes(body)
        assert dict(attributes) == {"cn": "Alice", "memberof": ["staff", "admins"]}

    def test_crlf_and_cr_line_endings(self) -> None:
        body = "userdetails.attribute.name=a\r\nuserdetails.attribute.value=1\ruserdetails.attribute.name=b"
        assert dict(decode_attributes(body)) == {"a": "1", "b": []}

    def test_only_cr_and_lf_break_lines(self) -> None:
        body = (
            "userdetails.attribute.name=cn\n"
            "userdetails.attribute.value=A\u2028B\x0cC\x85D\n"
        )
        assert decode_attributes(body)["cn"] == "A\u2028B\x0cC\x85D"

    def test_empty_input(self) -> None:
        assert len(decode_attributes("")) == 0

    def test_names_are_lower_cased_including_last(self) -> None:
        body = "userdetails.attribute.name=Email\nuserdetails.attribute.value=a@example.com"
        assert list(decode_attributes(body)) == ["email"]

    def test_value_may_contain_equals(self) -> None:
        body = "userdetails.attribute.name=dn\nuserdetails.attribute.value=uid=alice,ou=people"
        assert decode_attributes(body)["dn"] == "uid=alice,ou=people"

    def test_values_before_any_name_are_ignored(self) -> None:
        body = "userdetails.attribute.value=orphan\nuserdetails.attribute.name=cn\nuserdetails.attribute.value=Alice"
        assert dict(decode_attributes(body)) == {"cn": "Alice"}

    def test_empty_name_starts_no_attribute(self) -> None:
        body = "userdetails.attribute.name=\nuserdetails.attribute.value=lost\nuserdetails.attribute.name=cn"
        assert dict(decode_attributes(body)) == {"cn": []}

    def test_unrelated_lines_are_ignored(self) -> None:
        body = "userdetails.role=id=admin\ngarbage\nuserdetails.attribute.name=cn\nuserdetails.attribute.value=A"
        assert dict(decode_attributes(body)) == {"cn": "A"}

    def test_repeated_name_replaces_earlier_entry(self) -> None:
        body = (
            "userdetails.attribute.name=cn\nuserdetails.attribute.value=first\n"
            "userdetails.attribute.name=CN\nuserdetails.attribute.value=second"
        )
        assert dict(decode_attributes(body)) == {"cn": "second"}


# ======================================================================
# AttributeMap
# ======================================================================


class TestAttributeMap:
    @pytest.fixture()
    def attributes(self) -> AttributeMap:
        return AttributeMap({"Mail": "a@example.com", "memberof": ["staff", "admins"]})

    def test_lookup_is_case_insensitive(self, attributes: AttributeMap) -> None:
        assert attributes["MAIL"] == attributes["mail"] == "a@example.com"
        assert "Mail" in attributes
        assert attributes.get("MEMBEROF") == ["staff", "admins"]

    def test_value_force_array(self, attributes: AttributeMap) -> None:
        assert attributes.value("mail") == "a@example.com"
        assert attributes.value("mail", force_array=True) == ["a@example.com"]
        assert attributes.value("memberof", force_array=True) == ["staff", "admins"]

    def test_unknown_name_defaults(self, attributes: AttributeMap) -> None:
        assert attributes.value("missing") == ""
        assert attributes.value("missing", force_array=True) == []

    def test_empty_name_rejected(self, attributes: AttributeMap) -> None:
        with pytest.raises(EmptyAttributeName):
            attributes.value("")

    def test_to_dict_returns_copies(self, attributes: AttributeMap) -> None:
        copy = attributes.to_dict()
        copy["memberof"].append("intruders")  # type: ignore[union-attr]
        assert attributes["memberof"] == ["staff", "admins"]

    def test_to_dict_force_arrays(self, attributes: AttributeMap) -> None:
        assert attributes.to_dict(force_arrays=True) == {
            "mail": ["a@example.com"],
            "memberof": ["staff", "admins"],
        }
