import unittest
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Response

from app.core.security import (
    TokenDecodeError,
    clear_auth_cookies,
    decode_token,
    extract_token_from_header,
    get_token_expiration,
    is_token_expired,
    set_auth_cookies,
)
from app.models.user_models import AuthTokens
from helpers import SIGNING_KEY, make_token


class DecodeTokenTests(unittest.TestCase):
    def test_reads_user_id_claim_without_verifying_signature(self):
        token = jwt.encode({"user_id": 42}, "some-other-key-nobody-shares-with-us-1234", algorithm="HS256")
        claims = decode_token(token)
        self.assertEqual(claims.subject, "42")
        self.assertIsNone(claims.expiry)
        self.assertEqual(claims.claims["user_id"], 42)

    def test_falls_back_to_sub_claim(self):
        token = jwt.encode({"sub": "abc"}, SIGNING_KEY, algorithm="HS256")
        self.assertEqual(decode_token(token).subject, "abc")

    def test_expired_token_still_decodes(self):
        token = make_token("u-1", expires_in=timedelta(hours=-1))
        claims = decode_token(token)
        self.assertEqual(claims.subject, "u-1")
        self.assertLess(claims.expiry, datetime.now(timezone.utc))

    def test_missing_subject_is_rejected(self):
        token = jwt.encode({"email": "a@b.c"}, SIGNING_KEY, algorithm="HS256")
        with self.assertRaises(TokenDecodeError):
            decode_token(token)

    def test_malformed_tokens_are_rejected(self):
        for token in ["", "abc", "a.b", "a.b.c", "not-a-jwt.at-all.really"]:
            with self.subTest(token=token):
                with self.assertRaises(TokenDecodeError):
                    decode_token(token)


class ExpiryTests(unittest.TestCase):
    def test_future_expiry_is_not_expired(self):
        token = make_token(expires_in=timedelta(minutes=5))
        self.assertFalse(is_token_expired(token))
        self.assertIsNotNone(get_token_expiration(token))

    def test_past_expiry_is_expired(self):
        self.assertTrue(is_token_expired(make_token(expires_in=timedelta(minutes=-5))))

    def test_missing_expiry_counts_as_expired(self):
        self.assertTrue(is_token_expired(make_token(expires_in=None)))

    def test_garbage_counts_as_expired(self):
        self.assertTrue(is_token_expired("garbage"))
        self.assertIsNone(get_token_expiration("garbage"))


class HeaderAndCookieTests(unittest.TestCase):
    def test_extract_bearer_token(self):
        self.assertEqual(extract_token_from_header("Bearer abc.def.ghi"), "abc.def.ghi")
        self.assertIsNone(extract_token_from_header("Basic xyz"))
        self.assertIsNone(extract_token_from_header("Bearer "))
        self.assertIsNone(extract_token_from_header(None))

    def test_set_auth_cookies(self):
        response = Response()
        set_auth_cookies(response, AuthTokens(access_token="a-token", refresh_token="r-token"))
        cookies = response.headers.getlist("set-cookie")

        access = next(c for c in cookies if c.startswith("accessToken="))
        refresh = next(c for c in cookies if c.startswith("refreshToken="))
        self.assertIn("Max-Age=3600", access)
        self.assertIn("Max-Age=604800", refresh)
        for cookie in (access, refresh):
            self.assertIn("HttpOnly", cookie)
            self.assertIn("Path=/", cookie)
            self.assertIn("SameSite=strict", cookie)
            # development settings
            self.assertNotIn("Secure", cookie)

    def test_clear_auth_cookies(self):
        response = Response()
        clear_auth_cookies(response)
        cookies = response.headers.getlist("set-cookie")
        self.assertEqual(len(cookies), 2)
        for cookie in cookies:
            self.assertIn("Max-Age=0", cookie)
