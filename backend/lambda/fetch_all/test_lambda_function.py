"""test_lambda_function.py — Mock-based tests for the fetch_all action.

Covers the full decode → IAM → _all_docs flow with urllib faked, including
every failure path and the always-200/exit-0 contract.

Run: python3 -m pytest test_lambda_function.py -v
"""

from __future__ import annotations

import importlib.util
import io
import json
import os
import sys
import unittest
import urllib.error
from unittest.mock import patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "shared_layer", "python"))

_spec = importlib.util.spec_from_file_location(
    "fetch_all",
    os.path.join(os.path.dirname(__file__), "lambda_function.py"),
)
fetch_all = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(fetch_all)

from cloudant_shared import config

IAM_URL = config.IAM_TOKEN_URL
DB_URL = "https://acct.cloudantnosqldb.appdomain.cloud"
ACCESS_TOKEN = "very-secret-access-token"

IAM_BODY = {
    "access_token": ACCESS_TOKEN,
    "refresh_token": "not_supported",
    "token_type": "Bearer",
    "expires_in": 3600,
    "expiration": 1616239535,
    "scope": "ibm openid",
}

ALL_DOCS_BODY = {
    "offset": 0,
    "rows": [
        {"id": "a", "key": "a", "value": {"rev": "1-aaa"}},
        {"id": "b", "key": "b", "value": {"rev": "3-bbb"}},
    ],
    "total_rows": 2,
}


def _make_input(**overrides):
    """Build the raw web-action argument string."""
    params = {
        "iam_apikey": "my-api-key",
        "db_url": DB_URL,
        "database": "todos",
        "__ow_method": "get",
        "__ow_query": "",
        "__ow_body": "",
        "__ow_headers": {"accept": "*/*", "host": "172.17.0.1"},
        "__ow_path": "",
    }
    params.update(overrides)
    return json.dumps(params)


class _FakeResponse:
    def __init__(self, payload, status=200):
        self.status = status
        self._raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self):
        return self._raw


class _Backend:
    """Routes faked urlopen calls to IAM or Cloudant and records them."""

    def __init__(self, iam=None, cloudant=None):
        self.iam = iam if iam is not None else _FakeResponse(IAM_BODY)
        self.cloudant = cloudant if cloudant is not None else _FakeResponse(ALL_DOCS_BODY)
        self.calls = []

    def __call__(self, req, timeout=None):
        self.calls.append(req)
        target = self.iam if req.full_url == IAM_URL else self.cloudant
        if isinstance(target, Exception):
            raise target
        return target

    def cloudant_calls(self):
        return [r for r in self.calls if r.full_url != IAM_URL]


class SuccessTests(unittest.TestCase):
    def test_listing_returned_in_data(self):
        backend = _Backend()
        with patch("urllib.request.urlopen", side_effect=backend):
            env = fetch_all.invoke(_make_input())

        self.assertEqual(env["statusCode"], "200 OK")
        self.assertFalse(env["body"]["err"])
        self.assertEqual(env["body"]["msg"], "fetch_all execution complete!")
        self.assertEqual(env["body"]["data"], ALL_DOCS_BODY)

    def test_query_is_authenticated_get(self):
        backend = _Backend()
        with patch("urllib.request.urlopen", side_effect=backend):
            fetch_all.invoke(_make_input())

        self.assertEqual(len(backend.calls), 2)
        req = backend.cloudant_calls()[0]
        self.assertEqual(req.get_method(), "GET")
        self.assertEqual(req.full_url, f"{DB_URL}/todos/_all_docs")
        self.assertEqual(req.get_header("Authorization"), f"Bearer {ACCESS_TOKEN}")

    def test_output_is_byte_identical_across_invocations(self):
        outputs = []
        for _ in range(2):
            out = io.StringIO()
            with patch("urllib.request.urlopen", side_effect=_Backend()), patch("sys.stdout", out):
                fetch_all.main(["exec", _make_input()])
            outputs.append(out.getvalue())
        self.assertEqual(outputs[0], outputs[1])

    def test_handler_accepts_decoded_params(self):
        with patch("urllib.request.urlopen", side_effect=_Backend()):
            env = fetch_all.handler(json.loads(_make_input()))
        self.assertFalse(env["body"]["err"])

    def test_token_never_in_output(self):
        with patch("urllib.request.urlopen", side_effect=_Backend()):
            env = fetch_all.invoke(_make_input())
        self.assertNotIn(ACCESS_TOKEN, json.dumps(env))


class DecodeFailureTests(unittest.TestCase):
    def test_malformed_input(self):
        backend = _Backend()
        for raw in ("", "{", "[]", "null", '{"iam_apikey": 1}'):
            with self.subTest(raw=raw), patch("urllib.request.urlopen", side_effect=backend):
                env = fetch_all.invoke(raw)
                self.assertEqual(env["statusCode"], "200 OK")
                self.assertTrue(env["body"]["err"])
                self.assertTrue(env["body"]["msg"].startswith("Failure parsing raw HTTP request:"))
        self.assertEqual(backend.calls, [])

    def test_missing_argument_still_exits_zero(self):
        out = io.StringIO()
        with patch("sys.stdout", out):
            code = fetch_all.main(["exec"])
        self.assertEqual(code, 0)
        lines = out.getvalue().splitlines()
        self.assertEqual(len(lines), 1)
        self.assertTrue(json.loads(lines[0])["body"]["err"])

    def test_api_key_not_echoed_on_decode_failure(self):
        env = fetch_all.invoke(_make_input(database=None))
        self.assertTrue(env["body"]["err"])
        self.assertNotIn("my-api-key", json.dumps(env))


class TokenFailureTests(unittest.TestCase):
    def test_connection_refused_skips_database(self):
        backend = _Backend(iam=urllib.error.URLError(ConnectionRefusedError(111, "Connection refused")))
        with patch("urllib.request.urlopen", side_effect=backend):
            env = fetch_all.invoke(_make_input())

        self.assertTrue(env["body"]["err"])
        self.assertEqual(env["body"]["msg"], "Failure requesting IAM token")
        self.assertEqual(backend.cloudant_calls(), [])

    def test_rejected_api_key(self):
        backend = _Backend(iam=urllib.error.HTTPError(IAM_URL, 400, "Bad Request", {}, io.BytesIO(b"{}")))
        with patch("urllib.request.urlopen", side_effect=backend):
            env = fetch_all.invoke(_make_input())
        self.assertEqual(env["body"]["msg"], "Failure requesting IAM token")
        self.assertEqual(backend.cloudant_calls(), [])

    def test_garbled_token_response(self):
        backend = _Backend(iam=_FakeResponse(b"not json"))
        with patch("urllib.request.urlopen", side_effect=backend):
            env = fetch_all.invoke(_make_input())
        self.assertTrue(env["body"]["msg"].startswith("Failure deserializing IAM response:"))
        self.assertEqual(backend.cloudant_calls(), [])


class DatabaseFailureTests(unittest.TestCase):
    def test_unauthorized_query(self):
        backend = _Backend(
            cloudant=urllib.error.HTTPError(f"{DB_URL}/todos/_all_docs", 401, "Unauthorized", {}, io.BytesIO(b""))
        )
        with patch("urllib.request.urlopen", side_effect=backend):
            env = fetch_all.invoke(_make_input())

        self.assertEqual(env["statusCode"], "200 OK")
        self.assertTrue(env["body"]["err"])
        self.assertTrue(env["body"]["msg"].startswith("Failure querying Cloudant:"))
        self.assertNotIn(ACCESS_TOKEN, json.dumps(env))

    def test_malformed_listing(self):
        backend = _Backend(cloudant=_FakeResponse({"offset": 0, "rows": [{"id": "a"}], "total_rows": 1}))
        with patch("urllib.request.urlopen", side_effect=backend):
            env = fetch_all.invoke(_make_input())
        self.assertTrue(env["body"]["msg"].startswith("Failure deserializing Cloudant response:"))
        self.assertNotIn("data", env["body"])

    def test_non_http_db_url(self):
        for db_url in ("acct.cloudantnosqldb.appdomain.cloud", "file:///tmp/x"):
            backend = _Backend()
            with self.subTest(db_url=db_url), patch("urllib.request.urlopen", side_effect=backend):
                env = fetch_all.invoke(_make_input(db_url=db_url))
                self.assertEqual(env["statusCode"], "200 OK")
                self.assertTrue(env["body"]["err"])
                self.assertTrue(env["body"]["msg"].startswith("Failure querying Cloudant:"))
                self.assertEqual(backend.cloudant_calls(), [])


if __name__ == "__main__":
    unittest.main()
