"""Unit tests for codepush_edge.router path classification."""

from __future__ import annotations

import pytest

from codepush_edge.router import Route, build_route_table, classify

TABLE = build_route_table("/v0.1/public/codepush")


class TestClassify:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/v0.1/public/codepush/update_check", Route.UPDATE_CHECK),
            ("/v0.1/public/codepush/update_check/extra", Route.UPDATE_CHECK),
            ("/v0.1/public/codepush/report_status/deploy", Route.GATED_API),
            ("/v0.1/public/codepush/report_status/download", Route.GATED_API),
            ("/v0.1/public/codepush/report_status/other", Route.PASS_THROUGH),
            ("/v0.1/public/codepush", Route.PASS_THROUGH),
            ("/", Route.PASS_THROUGH),
            ("/v0.2/public/codepush/update_check", Route.PASS_THROUGH),
        ],
    )
    def test_classification(self, path: str, expected: Route) -> None:
        assert classify(path, TABLE) is expected

    def test_table_longest_first(self) -> None:
        lengths = [len(prefix) for prefix, _ in TABLE]
        assert lengths == sorted(lengths, reverse=True)

    def test_custom_base_path(self) -> None:
        table = build_route_table("/codepush/")
        assert classify("/codepush/update_check", table) is Route.UPDATE_CHECK
        assert classify("/v0.1/public/codepush/update_check", table) is Route.PASS_THROUGH
