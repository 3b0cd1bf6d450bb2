"""Unit tests for codepush_edge.freshness and the ledger data model."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from helpers import DEPLOY_PATH, DOWNLOAD_PATH, UPDATE_CHECK_PATH, make_request
from pydantic import ValidationError

from codepush_edge.freshness import (
    PayloadError,
    build_record,
    cache_key_for,
    decode_record,
    has_update,
    identity_for_status_report,
    identity_from_query,
    parse_json_object,
)
from codepush_edge.models.ledger import ClientIdentity, FreshnessRecord, FreshnessState

# ---------------------------------------------------------------------------
# has-update rule
# ---------------------------------------------------------------------------


class TestHasUpdate:
    def test_download_url_present(self) -> None:
        assert has_update({"download_url": "https://x/y.zip"}) is True

    def test_empty_object(self) -> None:
        assert has_update({}) is False

    def test_empty_download_url(self) -> None:
        assert has_update({"download_url": ""}) is False

    def test_null_download_url(self) -> None:
        assert has_update({"download_url": None}) is False


class TestParseJsonObject:
    def test_object(self) -> None:
        assert parse_json_object(b'{"a": 1}') == {"a": 1}

    def test_invalid_json(self) -> None:
        with pytest.raises(PayloadError):
            parse_json_object(b"<html>oops</html>")

    def test_empty_body(self) -> None:
        with pytest.raises(PayloadError):
            parse_json_object(b"")

    def test_non_object(self) -> None:
        with pytest.raises(PayloadError):
            parse_json_object(b"[1, 2]")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(PayloadError):
            parse_json_object(b"\xff\xfe\xfa")


# ---------------------------------------------------------------------------
# Client identity
# ---------------------------------------------------------------------------


class TestIdentity:
    def test_ledger_key_format(self) -> None:
        identity = ClientIdentity(deployment_key="prod", app_version="1.2.0")
        assert identity.ledger_key == "update-status:prod:1.2.0"

    def test_defaults(self) -> None:
        assert ClientIdentity().ledger_key == "update-status:default:unknown"

    def test_from_query(self) -> None:
        request = make_request(UPDATE_CHECK_PATH, query="deployment_key=prod&app_version=1.2.0")
        assert identity_from_query(request) == ClientIdentity(
            deployment_key="prod", app_version="1.2.0"
        )

    def test_from_query_missing_params_default(self) -> None:
        request = make_request(UPDATE_CHECK_PATH, query="deployment_key=prod")
        assert identity_from_query(request) == ClientIdentity(
            deployment_key="prod", app_version="unknown"
        )

    def test_from_query_empty_values_default(self) -> None:
        request = make_request(UPDATE_CHECK_PATH, query="deployment_key=&app_version=")
        assert identity_from_query(request) == ClientIdentity()

    def test_get_status_report_uses_query(self) -> None:
        request = make_request(
            DOWNLOAD_PATH,
            query="deployment_key=prod&app_version=1.2.0",
            body=b'{"deployment_key": "other"}',
        )
        assert identity_for_status_report(request).ledger_key == "update-status:prod:1.2.0"

    def test_post_status_report_uses_body(self) -> None:
        request = make_request(
            DEPLOY_PATH,
            method="POST",
            query="deployment_key=ignored",
            body=b'{"deployment_key": "prod", "app_version": "1.2.0"}',
        )
        assert identity_for_status_report(request).ledger_key == "update-status:prod:1.2.0"

    def test_post_unparseable_body_defaults(self) -> None:
        request = make_request(DEPLOY_PATH, method="POST", body=b"not json")
        assert identity_for_status_report(request) == ClientIdentity()

    def test_post_non_string_fields_stringified(self) -> None:
        request = make_request(
            DEPLOY_PATH, method="POST", body=b'{"deployment_key": "prod", "app_version": 3}'
        )
        assert identity_for_status_report(request).app_version == "3"

    def test_other_methods_default(self) -> None:
        request = make_request(
            DEPLOY_PATH, method="PUT", body=b'{"deployment_key": "prod", "app_version": "1"}'
        )
        assert identity_for_status_report(request) == ClientIdentity()


# ---------------------------------------------------------------------------
# Freshness record and state
# ---------------------------------------------------------------------------


class TestFreshnessRecord:
    def test_build_record_with_update(self) -> None:
        payload = {"download_url": "https://x/y.zip", "label": "v5"}
        record = build_record(payload)
        assert record.has_update is True
        assert record.update_payload == payload
        assert record.observed_at.tzinfo is not None

    def test_build_record_without_update(self) -> None:
        record = build_record({"is_available": False})
        assert record.has_update is False
        assert record.update_payload is None

    def test_payload_required_with_update(self) -> None:
        with pytest.raises(ValidationError):
            FreshnessRecord(has_update=True, observed_at=datetime.now(UTC))

    def test_payload_forbidden_without_update(self) -> None:
        with pytest.raises(ValidationError):
            FreshnessRecord(
                has_update=False,
                observed_at=datetime.now(UTC),
                update_payload={"download_url": "x"},
            )

    def test_decode_roundtrip(self) -> None:
        record = build_record({"download_url": "https://x/y.zip"})
        decoded = decode_record(record.model_dump_json(), "k")
        assert decoded == record

    def test_decode_corrupt_returns_none(self) -> None:
        assert decode_record("{not json", "k") is None
        assert decode_record('{"has_update": "maybe"}', "k") is None


class TestFreshnessState:
    def test_no_record(self) -> None:
        assert FreshnessState.classify(None) is FreshnessState.NO_RECORD

    def test_fresh(self) -> None:
        record = build_record({})
        assert FreshnessState.classify(record) is FreshnessState.FRESH

    def test_stale(self) -> None:
        record = build_record({"download_url": "https://x/y.zip"})
        assert FreshnessState.classify(record) is FreshnessState.STALE


# ---------------------------------------------------------------------------
# Cache key
# ---------------------------------------------------------------------------

VARY = ("accept", "accept-encoding")


class TestCacheKey:
    def test_stable(self) -> None:
        request = make_request(DOWNLOAD_PATH, query="deployment_key=prod&app_version=1.2.0")
        assert cache_key_for(request, VARY) == cache_key_for(request, VARY)

    def test_body_excluded(self) -> None:
        a = make_request(DEPLOY_PATH, method="POST", body=b'{"status": "ok"}')
        b = make_request(DEPLOY_PATH, method="POST", body=b'{"status": "failed"}')
        assert cache_key_for(a, VARY) == cache_key_for(b, VARY)

    def test_method_included(self) -> None:
        a = make_request(DEPLOY_PATH, method="GET")
        b = make_request(DEPLOY_PATH, method="POST")
        assert cache_key_for(a, VARY) != cache_key_for(b, VARY)

    def test_query_included(self) -> None:
        a = make_request(DOWNLOAD_PATH, query="app_version=1.0.0")
        b = make_request(DOWNLOAD_PATH, query="app_version=1.0.1")
        assert cache_key_for(a, VARY) != cache_key_for(b, VARY)

    def test_vary_header_included(self) -> None:
        a = make_request(DOWNLOAD_PATH, headers=[("Accept", "application/json")])
        b = make_request(DOWNLOAD_PATH, headers=[("Accept", "text/plain")])
        assert cache_key_for(a, VARY) != cache_key_for(b, VARY)

    def test_other_headers_ignored(self) -> None:
        a = make_request(DOWNLOAD_PATH, headers=[("x-request-id", "1")])
        b = make_request(DOWNLOAD_PATH, headers=[("x-request-id", "2")])
        assert cache_key_for(a, VARY) == cache_key_for(b, VARY)

    def test_header_name_case_insensitive(self) -> None:
        a = make_request(DOWNLOAD_PATH, headers=[("ACCEPT", "application/json")])
        b = make_request(DOWNLOAD_PATH, headers=[("accept", "application/json")])
        assert cache_key_for(a, ["Accept"]) == cache_key_for(b, ["accept"])
