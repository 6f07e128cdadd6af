"""
Tests for the regression page helpers.
"""

import pytest

from mreg_page import _next_model_name


class TestNextModelName:
    """Tests for _next_model_name."""

    @pytest.mark.parametrize("taken, expected", [
        ([], "Model 1"),
        (["Model 1"], "Model 2"),
        (["Model 2"], "Model 3"),
        (["Model 1", "Model 3"], "Model 4"),
        (["Full model"], "Model 2"),
    ])
    def test_suggestion_is_unused(self, taken, expected):
        saved = {name: object() for name in taken}
        assert _next_model_name(saved) == expected

    def test_consecutive_saves_keep_earlier_models(self):
        saved = {}
        for _ in range(3):
            saved[_next_model_name(saved)] = object()

        assert list(saved) == ["Model 1", "Model 2", "Model 3"]
