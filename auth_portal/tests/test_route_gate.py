"""
Route gating tests.
"""

import pytest
from fastapi import status

from auth_portal.security.route_gate import RouteKind, classify_path

from .conftest import make_token, set_cookies


@pytest.mark.parametrize("path, kind", [
    ("/", RouteKind.PUBLIC),
    ("/forgot-password", RouteKind.PUBLIC),
    ("/forgot-password/verify", RouteKind.PUBLIC),
    ("/forgot-password/reset/", RouteKind.PUBLIC),
    ("/register", RouteKind.PUBLIC),
    ("/sso/logout", RouteKind.PUBLIC),
    ("/health", RouteKind.PUBLIC),
    ("/api/anything/at/all", RouteKind.PUBLIC),
    ("/sign-in", RouteKind.AUTH_ONLY),
    ("/sign-up", RouteKind.AUTH_ONLY),
    ("/dashboard", RouteKind.PROTECTED),
    ("/apiary", RouteKind.PROTECTED),
    ("/forgot-password/other", RouteKind.PROTECTED),
])
def test_classify_path(path, kind):
    assert classify_path(path) is kind


class TestAuthOnlyRoutes:

    def test_signed_in_user_sent_to_dashboard(self, client):
        client.cookies.set("access_token", make_token())

        response = client.get("/sign-in", follow_redirects=False)

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == "/dashboard"

    def test_redirect_param_passes_and_is_captured(self, client):
        client.cookies.set("access_token", make_token())

        response = client.get("/sign-in", params={"redirect": "/orders"}, follow_redirects=False)

        assert response.status_code != status.HTTP_302_FOUND
        assert set_cookies(response)["redirect_hint"].value == "/orders"

    def test_prompt_login_passes(self, client):
        client.cookies.set("access_token", make_token())

        response = client.get("/sign-in", params={"prompt": "login"}, follow_redirects=False)

        assert response.status_code != status.HTTP_302_FOUND

    def test_expired_token_passes(self, client):
        client.cookies.set("access_token", make_token(exp_delta=-5))

        response = client.get("/sign-up", follow_redirects=False)

        assert response.status_code != status.HTTP_302_FOUND

    def test_foreign_redirect_not_captured(self, client):
        response = client.get("/sign-in", params={"redirect": "https://evil.com"}, follow_redirects=False)

        assert "redirect_hint" not in set_cookies(response)

    def test_product_redirect_captured(self, client):
        target = "https://products.example.com/orders"

        response = client.get("/sign-in", params={"redirect": target}, follow_redirects=False)

        assert set_cookies(response)["redirect_hint"].value == target


class TestProtectedRoutes:

    def test_no_session_redirects_to_sign_in(self, client):
        response = client.get("/reports/weekly", params={"range": "7d"}, follow_redirects=False)

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == "/sign-in?redirect=/reports/weekly%3Frange%3D7d"

    def test_valid_access_token_passes(self, client):
        client.cookies.set("access_token", make_token())

        response = client.get("/dashboard", follow_redirects=False)

        assert response.status_code != status.HTTP_302_FOUND

    def test_refresh_token_alone_passes(self, client):
        client.cookies.set("refresh_token", "refresh-1")

        response = client.get("/dashboard", follow_redirects=False)

        assert response.status_code != status.HTTP_302_FOUND

    def test_public_page_passes_without_session(self, client):
        response = client.get("/health", follow_redirects=False)

        assert response.status_code == status.HTTP_200_OK
