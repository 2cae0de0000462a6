# -*- coding: utf-8 -*-
"""
Tests for uor.core.api - The public chart/manifold operations.

Author
------
UOR Engine contributors

Created
-------
2026-10-16
"""

import threading

import pytest

import uor
from uor.core.api import build_manifold, load_chart, read_payload, run
from uor.core.chart import Chart
from uor.core.errors import (
    CancellationError,
    ExecutionError,
    PayloadUnavailable,
    SchemaError,
)
from uor.core.manifold import NodeStatus
from uor.core.registry import default_registry


CHART_YAML = """
name: pipeline
version: 2.1.0
description: Sum two constants and scale the result.
nodes:
  a: {type: const, params: {value: 5}}
  b: {type: const, params: {value: 7}}
  c: {type: add, depends_on: [a, b]}
  d: {type: scale, params: {factor: 10}, depends_on: c}
"""


class TestLoadChart:
    def test_from_text(self):
        chart = load_chart(CHART_YAML)
        assert chart.name == 'pipeline'
        assert chart.version == '2.1.0'
        assert chart.node('d').depends_on == ('c',)

    def test_from_bytes(self):
        assert load_chart(CHART_YAML.encode('utf-8')).name == 'pipeline'

    def test_from_path(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text(CHART_YAML)
        assert load_chart(path) == load_chart(CHART_YAML)

    def test_missing_path(self, tmp_path):
        with pytest.raises(SchemaError, match="Cannot read"):
            load_chart(tmp_path / "missing.yaml")

    def test_from_mapping(self):
        chart = load_chart({'name': 'm', 'nodes': []})
        assert isinstance(chart, Chart)

    def test_chart_passthrough(self):
        chart = load_chart(CHART_YAML)
        assert load_chart(chart) is chart

    def test_unsupported_source(self):
        with pytest.raises(SchemaError, match="int"):
            load_chart(42)

    def test_registry_checks(self):
        with pytest.raises(SchemaError, match="factor"):
            load_chart(CHART_YAML.replace("{factor: 10}", "{}"),
                       registry=default_registry())


class TestEndToEnd:
    def test_build_run_read(self):
        registry = default_registry()
        manifold = build_manifold(load_chart(CHART_YAML, registry), registry)
        assert manifold.node_ids == ('a', 'b', 'c', 'd')
        run(manifold, registry, max_workers=2)
        assert read_payload(manifold, 'c') == 12
        assert read_payload(manifold, 'd') == 120

    def test_read_before_run(self):
        registry = default_registry()
        manifold = build_manifold(load_chart(CHART_YAML), registry)
        with pytest.raises(PayloadUnavailable):
            read_payload(manifold, 'a')
        with pytest.raises(KeyError):
            read_payload(manifold, 'nope')

    def test_failure_surfaces_execution_error(self):
        registry = default_registry()
        source = CHART_YAML.replace("value: 7", "value: seven")
        manifold = build_manifold(load_chart(source), registry)
        with pytest.raises(ExecutionError) as exc_info:
            run(manifold, registry)
        assert set(exc_info.value.failures) == {'c'}
        assert manifold.status('d') is NodeStatus.SKIPPED
        assert read_payload(manifold, 'b') == 'seven'

    def test_cancel(self):
        registry = default_registry()
        manifold = build_manifold(load_chart(CHART_YAML), registry)
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(CancellationError):
            run(manifold, registry, cancel=cancel)


class TestPackageExports:
    def test_top_level_names(self):
        for name in ('load_chart', 'build_manifold', 'run', 'read_payload',
                     'CognitiveStack', 'Stage', 'default_registry'):
            assert name in uor.__all__
            assert hasattr(uor, name)

    def test_version(self):
        assert uor.__version__ == "0.1.0"
