"""Tests for diffyne package exports and metadata."""

import pytest

import diffyne


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(diffyne.__version__, str)
        assert "0.1.0" in diffyne.__version__

    def test_free_threading_declaration(self) -> None:
        assert diffyne._Py_mod_gil == 0

    def test_all_exports_resolvable(self) -> None:
        for name in diffyne.__all__:
            assert getattr(diffyne, name) is not None

    def test_exports_are_the_real_objects(self) -> None:
        from diffyne.component.base import Component
        from diffyne.protocol.pipeline import RequestPipeline

        assert diffyne.Component is Component
        assert diffyne.RequestPipeline is RequestPipeline

    def test_invalid_attribute_raises(self) -> None:
        with pytest.raises(AttributeError, match="no attribute"):
            diffyne.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018
