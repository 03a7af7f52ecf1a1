"""
Redirect Validation Tests

Covers the origin allow-list, relative paths, protocol-relative and
malformed targets, and the fail-closed behavior without a known origin.
"""

import pytest

from auth_portal.security.redirects import is_relative_path, normalize_origin, validate_redirect

ALLOW = ["https://products.example.com"]
SELF = "https://auth.example.com"


class TestValidateRedirect:
    """validate_redirect accept/reject cases"""

    def test_rejects_foreign_origin(self):
        assert validate_redirect("https://evil.com/steal", ALLOW, SELF) is None

    def test_allowed_absolute_url_returned_unchanged(self):
        url = "https://products.example.com/orders?tab=open"
        assert validate_redirect(url, ALLOW, SELF) == url

    def test_relative_path_returned_unchanged(self):
        assert validate_redirect("/dashboard", ALLOW, SELF) == "/dashboard"

    def test_same_origin_absolute_url_accepted(self):
        assert validate_redirect("https://auth.example.com/x", ALLOW, SELF) == "https://auth.example.com/x"

    def test_non_slash_relative_reference_is_resolved(self):
        assert validate_redirect("dashboard", ALLOW, SELF) == "https://auth.example.com/dashboard"

    @pytest.mark.parametrize("candidate", [None, ""])
    def test_empty_input(self, candidate):
        assert validate_redirect(candidate, ALLOW, SELF) is None

    def test_not_a_url(self):
        assert validate_redirect("not a url", ALLOW, SELF) is None

    @pytest.mark.parametrize("self_origin", [None, ""])
    def test_fails_closed_without_self_origin(self, self_origin):
        assert validate_redirect("/dashboard", ALLOW, self_origin) is None
        assert validate_redirect("https://products.example.com", ALLOW, self_origin) is None

    def test_protocol_relative_foreign_host_rejected(self):
        assert validate_redirect("//evil.com/path", ALLOW, SELF) is None

    def test_protocol_relative_allowed_host_accepted(self):
        assert validate_redirect("//products.example.com/a", ALLOW, SELF) == "//products.example.com/a"

    @pytest.mark.parametrize("candidate", [
        "/\\evil.com",
        "/ok\npath",
        "/tab\tpath",
        "https://products.example.com\\@evil.com",
    ])
    def test_backslash_and_control_characters_rejected(self, candidate):
        assert validate_redirect(candidate, ALLOW, SELF) is None

    @pytest.mark.parametrize("candidate", [
        "javascript:alert(1)",
        "data:text/html,hi",
        "ftp://products.example.com/file",
    ])
    def test_non_http_schemes_rejected(self, candidate):
        assert validate_redirect(candidate, ALLOW, SELF) is None

    def test_origin_comparison_is_normalized(self):
        assert validate_redirect("HTTPS://Products.Example.com:443/x", ALLOW, SELF) is not None

    def test_port_mismatch_rejected(self):
        assert validate_redirect("https://products.example.com:8443/x", ALLOW, SELF) is None

    def test_lookalike_host_rejected(self):
        assert validate_redirect("https://products.example.com.evil.com/", ALLOW, SELF) is None
        assert validate_redirect("https://products.example.com@evil.com/", ALLOW, SELF) is None

    def test_same_origin_api_path_not_blocked(self):
        # Only cross-origin targets are blocked.
        assert validate_redirect("/api/admin", ALLOW, SELF) == "/api/admin"


class TestNormalizeOrigin:

    def test_drops_default_port_and_lowercases(self):
        assert normalize_origin("HTTPS://Auth.Example.com:443/path") == "https://auth.example.com"

    def test_keeps_explicit_port(self):
        assert normalize_origin("http://localhost:3000/") == "http://localhost:3000"

    def test_rejects_non_http(self):
        assert normalize_origin("mailto:a@b.c") is None


def test_is_relative_path():
    assert is_relative_path("/orders")
    assert not is_relative_path("//evil.com")
    assert not is_relative_path("https://a.b")
    assert not is_relative_path(None)
