"""Unit tests for lazy values.

Tests rendering of constants, references and computed values, and the
closed set of inputs accepted by to_lazy.
"""

import pytest

from resilient_requests.exceptions import ConfigurationError
from resilient_requests.lazy import Computed, Constant, LazyValue, Ref, secret_key, to_lazy


class TestRendering:
    """Tests for rendering each kind of lazy value."""

    def test_constant_renders_text(self) -> None:
        assert Constant("abc").render() == "abc"
        assert str(Constant("abc")) == "abc"

    def test_ref_observes_mutation(self) -> None:
        token = Ref("secret")
        assert token.render() == "secret"

        token.set("super-secret")
        assert token.render() == "super-secret"

        token.value = "direct"
        assert str(token) == "direct"

    def test_computed_is_called_on_every_render(self) -> None:
        calls = []

        def produce() -> str:
            calls.append(1)
            return f"call-{len(calls)}"

        value = Computed(produce)
        assert value.render() == "call-1"
        assert value.render() == "call-2"
        assert len(calls) == 2

    def test_computed_converts_result_to_text(self) -> None:
        assert Computed(lambda: 42).render() == "42"

    def test_base_class_is_abstract(self) -> None:
        with pytest.raises(NotImplementedError):
            LazyValue().render()


class TestToLazy:
    """Tests for converting inputs into lazy values."""

    def test_string_becomes_constant(self) -> None:
        value = to_lazy("text")
        assert isinstance(value, Constant)
        assert value.render() == "text"

    def test_empty_string_is_accepted(self) -> None:
        assert to_lazy("").render() == ""

    def test_lazy_value_is_used_as_is(self) -> None:
        token = Ref("a")
        assert to_lazy(token) is token

    def test_custom_lazy_value_is_used_as_is(self) -> None:
        class Upper(LazyValue):
            def render(self) -> str:
                return "UPPER"

        value = Upper()
        assert to_lazy(value) is value

    def test_zero_argument_callable_becomes_computed(self) -> None:
        value = to_lazy(lambda: "computed")
        assert isinstance(value, Computed)
        assert value.render() == "computed"

    def test_callable_with_defaults_is_accepted(self) -> None:
        def with_default(prefix: str = "p") -> str:
            return prefix + "x"

        assert to_lazy(with_default).render() == "px"

    def test_integer_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            to_lazy(123)
        assert str(exc_info.value) == "can not convert 123 to stringer"

    @pytest.mark.parametrize("value", [None, 1.5, b"bytes", ["a"], {"a": "b"}, str])
    def test_unsupported_inputs_are_rejected(self, value: object) -> None:
        with pytest.raises(ConfigurationError, match="to stringer"):
            to_lazy(value)

    def test_callable_with_required_argument_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            to_lazy(lambda x: x)


def test_secret_key_format() -> None:
    assert secret_key("token") == "${token}"
    assert secret_key("MASKED_1") == "${MASKED_1}"
