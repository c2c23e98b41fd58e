"""Tests for bearer parsing and issuer-backed identity verification."""

import time
from unittest.mock import patch

import pytest

from src.medmonitor.core.config import Settings
from src.medmonitor.core.exceptions import IdentityIncompleteError, UnauthenticatedError
from src.medmonitor.core.identity import (
    FirebaseIdentityVerifier,
    GoogleIdentityVerifier,
    VerifiedIdentity,
    build_identity_verifier,
    identity_from_claims,
    parse_bearer,
)

GOOGLE_CLAIMS = {
    "iss": "https://accounts.google.com",
    "aud": "client-id",
    "sub": "1122334455",
    "email": "Jane.Doe@Example.com",
    "name": "Jane Doe",
    "picture": "https://example.com/jane.png",
}


class TestParseBearer:
    def test_extracts_token(self):
        assert parse_bearer("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert parse_bearer("bearer abc") == "abc"

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_bearer("  Bearer   abc  ") == "abc"

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header):
        with pytest.raises(UnauthenticatedError) as exc_info:
            parse_bearer(header)
        assert "provide Bearer token" in exc_info.value.message

    @pytest.mark.parametrize(
        "header",
        ["Basic dXNlcjpwdw==", "Bearer", "Bearer   ", "abc", "Bearer abc def", "Bearer abc Bearer def"],
    )
    def test_malformed_header(self, header):
        with pytest.raises(UnauthenticatedError) as exc_info:
            parse_bearer(header)
        assert exc_info.value.message == "authorization header format must be Bearer {token}"


class TestIdentityFromClaims:
    def test_maps_claims(self):
        identity = identity_from_claims(GOOGLE_CLAIMS)
        assert identity == VerifiedIdentity(
            email="jane.doe@example.com",
            subject_id="1122334455",
            name="Jane Doe",
            picture="https://example.com/jane.png",
        )

    def test_optional_claims_default_to_empty(self):
        identity = identity_from_claims({"email": "a@b.c", "uid": "firebase-uid"})
        assert identity.name == ""
        assert identity.picture == ""
        assert identity.subject_id == "firebase-uid"

    @pytest.mark.parametrize("claims", [{}, {"email": ""}, {"email": None}, {"email": 42}])
    def test_email_is_mandatory(self, claims):
        with pytest.raises(IdentityIncompleteError):
            identity_from_claims(claims)


class TestGoogleIdentityVerifier:
    async def test_valid_token(self):
        verifier = GoogleIdentityVerifier(audience="client-id", timeout=5)
        with patch(
            "src.medmonitor.core.identity.google_id_token.verify_oauth2_token",
            return_value=GOOGLE_CLAIMS,
        ) as mock_verify:
            identity = await verifier.verify("good-token")

        assert identity.email == "jane.doe@example.com"
        args, kwargs = mock_verify.call_args
        assert args[0] == "good-token"
        assert kwargs["audience"] == "client-id"

    async def test_rejected_token_is_unauthenticated(self):
        verifier = GoogleIdentityVerifier(audience="client-id", timeout=5)
        with patch(
            "src.medmonitor.core.identity.google_id_token.verify_oauth2_token",
            side_effect=ValueError("Token expired"),
        ):
            with pytest.raises(UnauthenticatedError) as exc_info:
                await verifier.verify("expired")

        assert exc_info.value.status_code == 401
        assert exc_info.value.error_code == "INVALID_TOKEN"
        assert "Token expired" in exc_info.value.message

    async def test_token_without_email(self):
        verifier = GoogleIdentityVerifier(audience="client-id", timeout=5)
        claims = {k: v for k, v in GOOGLE_CLAIMS.items() if k != "email"}
        with patch(
            "src.medmonitor.core.identity.google_id_token.verify_oauth2_token",
            return_value=claims,
        ):
            with pytest.raises(IdentityIncompleteError):
                await verifier.verify("no-email")

    async def test_slow_issuer_times_out(self):
        verifier = GoogleIdentityVerifier(audience="client-id", timeout=0.05)

        def slow(*args, **kwargs):
            time.sleep(0.3)
            return GOOGLE_CLAIMS

        with patch("src.medmonitor.core.identity.google_id_token.verify_oauth2_token", side_effect=slow):
            with pytest.raises(UnauthenticatedError) as exc_info:
                await verifier.verify("slow-token")

        assert exc_info.value.error_code == "ISSUER_TIMEOUT"


class TestFirebaseIdentityVerifier:
    def test_requires_project_id(self):
        with pytest.raises(ValueError):
            FirebaseIdentityVerifier(project_id="", timeout=5)

    async def test_valid_token(self):
        verifier = FirebaseIdentityVerifier(project_id="clinic-project", timeout=5)
        with (
            patch("src.medmonitor.core.identity.firebase_admin.initialize_app", return_value=object()),
            patch(
                "src.medmonitor.core.identity.firebase_auth.verify_id_token",
                return_value={"uid": "fb-1", "email": "doc@clinic.test", "name": "Doc"},
            ),
        ):
            identity = await verifier.verify("firebase-token")

        assert identity.email == "doc@clinic.test"
        assert identity.subject_id == "fb-1"

    async def test_rejected_token_is_unauthenticated(self):
        verifier = FirebaseIdentityVerifier(project_id="clinic-project", timeout=5)
        with (
            patch("src.medmonitor.core.identity.firebase_admin.initialize_app", return_value=object()),
            patch(
                "src.medmonitor.core.identity.firebase_auth.verify_id_token",
                side_effect=ValueError("Illegal ID token provided"),
            ),
        ):
            with pytest.raises(UnauthenticatedError):
                await verifier.verify("garbage")


def test_build_identity_verifier_selects_issuer():
    google = build_identity_verifier(
        Settings(_env_file=None, DATABASE_URL="sqlite+aiosqlite://", GOOGLE_CLIENT_ID="cid")
    )
    assert isinstance(google, GoogleIdentityVerifier)
    assert google.audience == "cid"

    firebase = build_identity_verifier(
        Settings(
            _env_file=None,
            DATABASE_URL="sqlite+aiosqlite://",
            IDENTITY_PROVIDER="firebase",
            FIREBASE_PROJECT_ID="clinic-project",
        )
    )
    assert isinstance(firebase, FirebaseIdentityVerifier)
    assert firebase.project_id == "clinic-project"
