"""Tests for the per-configuration stage registry."""

import pytest

from conftest import StubEmbedder
from services.pipeline.registry import STAGE_NAMES, StageRegistry
from services.pipeline.rule_extractor import RuleExtractorService


class TestStageRegistry:
    def test_get_creates_and_loads(self, config):
        registry = StageRegistry(config, embedder=StubEmbedder())
        svc = registry.get("rule_extractor")
        assert isinstance(svc, RuleExtractorService)
        assert svc.is_loaded

    def test_get_returns_same_instance(self, config):
        registry = StageRegistry(config, embedder=StubEmbedder())
        assert registry.get("aggregator") is registry.get("aggregator")

    def test_unknown_stage(self, config):
        with pytest.raises(ValueError):
            StageRegistry(config).get("m1_jd_extractor")

    def test_preload_all(self, config):
        registry = StageRegistry(config, embedder=StubEmbedder())
        registry.preload()
        assert all(registry.get(name).is_loaded for name in STAGE_NAMES)

    def test_clear(self, config):
        registry = StageRegistry(config, embedder=StubEmbedder())
        first = registry.get("gap_detector")
        registry.clear()
        assert registry.get("gap_detector") is not first

    def test_stages_bound_to_registry_config(self, make_config):
        a = StageRegistry(make_config(sim_high_threshold=0.8), embedder=StubEmbedder())
        b = StageRegistry(make_config(sim_high_threshold=0.9), embedder=StubEmbedder())
        assert a.get("semantic_evaluator").config.sim_high_threshold == 0.8
        assert b.get("semantic_evaluator").config.sim_high_threshold == 0.9

    def test_injected_embedder_used(self, config):
        embedder = StubEmbedder()
        assert StageRegistry(config, embedder=embedder).embedder is embedder
