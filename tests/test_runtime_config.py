"""RuntimeConfig validation and derived values."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from common.config import (
    DEFAULT_OBJECT_LABELS,
    UNRECOGNIZED_OBJECT_LABEL,
    RuntimeConfig,
    load_runtime_config,
)
from common.config.cycle import _parse_labels, _truthy


class TestDefaults:
    def test_object_label_table(self):
        config = RuntimeConfig()
        assert config.object_labels == DEFAULT_OBJECT_LABELS
        assert config.unrecognized_object_label == UNRECOGNIZED_OBJECT_LABEL

    def test_overrides(self):
        config = load_runtime_config(period_ms=500, gallery_labels=["Ana"])
        assert config.period_ms == 500
        assert config.gallery_labels == ["Ana"]


class TestValidation:
    @pytest.mark.parametrize("period", [0, -5])
    def test_period_must_be_positive(self, period):
        with pytest.raises(ValidationError):
            RuntimeConfig(period_ms=period)

    def test_negative_timeout_rejected(self):
        with pytest.raises(ValidationError):
            RuntimeConfig(classifier_timeout_ms=-1)

    def test_unknown_is_reserved(self):
        with pytest.raises(ValidationError):
            RuntimeConfig(gallery_labels=["Ana", "unknown"])

    def test_duplicate_labels_keep_first_order(self):
        config = RuntimeConfig(gallery_labels=["Ben", "Ana", "Ben"])
        assert config.gallery_labels == ["Ben", "Ana"]


class TestDerived:
    def test_timeout_falls_back_to_period(self):
        config = RuntimeConfig(period_ms=250, classifier_timeout_ms=0)
        assert config.classifier_timeout_seconds == pytest.approx(0.25)

    def test_explicit_timeout(self):
        config = RuntimeConfig(period_ms=250, classifier_timeout_ms=1500)
        assert config.classifier_timeout_seconds == pytest.approx(1.5)

    def test_camera_index(self):
        assert RuntimeConfig(camera_source="2").camera_index_or_url == 2

    def test_camera_url(self):
        url = "rtsp://camera.local/stream"
        assert RuntimeConfig(camera_source=url).camera_index_or_url == url


class TestEnvParsing:
    @pytest.mark.parametrize("raw,expected", [
        ("1", True), ("true", True), (" YES ", True), ("on", True),
        ("0", False), ("false", False), ("", False),
    ])
    def test_truthy(self, raw, expected):
        assert _truthy(raw) is expected

    def test_truthy_default_when_unset(self):
        assert _truthy(None, default=True) is True

    def test_parse_labels_strips_and_skips_blanks(self):
        assert _parse_labels(" Ana, ,Ben ,") == ["Ana", "Ben"]
