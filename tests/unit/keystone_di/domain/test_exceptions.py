"""Unit tests for domain exceptions."""

import pytest

from keystone_di.domain import ComponentKey, Named
from keystone_di.domain.exceptions import (
    ComponentCreationError,
    CyclicDependenciesFoundError,
    DependencyNotFoundError,
    DIException,
    IllegalComponentError,
)


class ServiceA:
    pass


class ServiceB:
    pass


class TestDIException:
    """Test cases for the base DIException class."""

    def test_di_exception_is_exception(self):
        """Test that DIException inherits from Exception."""
        assert issubclass(DIException, Exception)

    def test_di_exception_can_be_raised(self):
        """Test that DIException can be raised with a message."""
        with pytest.raises(DIException, match="Test error"):
            raise DIException("Test error")

    @pytest.mark.parametrize(
        "exception_type",
        [IllegalComponentError, DependencyNotFoundError, CyclicDependenciesFoundError, ComponentCreationError],
    )
    def test_subclasses(self, exception_type):
        """Test that every DI error can be caught as DIException."""
        assert issubclass(exception_type, DIException)


class TestIllegalComponentError:
    """Test cases for the IllegalComponentError class."""

    def test_message_with_reason(self):
        """Test the message names the component and the reason."""
        error = IllegalComponentError(ServiceA, "abstract classes cannot be instantiated")

        assert error.component is ServiceA
        assert error.reason == "abstract classes cannot be instantiated"
        assert str(error) == "Illegal component: ServiceA. Reason: abstract classes cannot be instantiated"

    def test_message_without_reason(self):
        """Test the message without reason."""
        error = IllegalComponentError(ServiceA)

        assert error.reason is None
        assert str(error) == "Illegal component: ServiceA"

    def test_non_type_component(self):
        """Test that markers are described by their repr."""
        error = IllegalComponentError("bogus", "neither a qualifier nor a scope")

        assert "'bogus'" in str(error)


class TestDependencyNotFoundError:
    """Test cases for the DependencyNotFoundError class."""

    def test_attributes_and_message(self):
        """Test that both keys are kept and named."""
        dependency = ComponentKey.of(ServiceB, Named("main"))
        component = ComponentKey.of(ServiceA)

        error = DependencyNotFoundError(dependency, component)

        assert error.dependency == dependency
        assert error.component == component
        assert "ServiceB" in str(error)
        assert "main" in str(error)
        assert "required by ServiceA" in str(error)


class TestCyclicDependenciesFoundError:
    """Test cases for the CyclicDependenciesFoundError class."""

    def test_components_are_a_frozenset(self):
        """Test that the cycle is reported as a set of keys."""
        keys = [ComponentKey.of(ServiceA), ComponentKey.of(ServiceB), ComponentKey.of(ServiceA)]

        error = CyclicDependenciesFoundError(keys)

        assert error.components == frozenset({ComponentKey.of(ServiceA), ComponentKey.of(ServiceB)})
        assert error.component_types == {ServiceA, ServiceB}

    def test_message_is_sorted(self):
        """Test that the message lists the components deterministically."""
        error = CyclicDependenciesFoundError([ComponentKey.of(ServiceB), ComponentKey.of(ServiceA)])

        assert str(error) == "Cyclic dependencies found between: ServiceA, ServiceB"


class TestComponentCreationError:
    """Test cases for the ComponentCreationError class."""

    def test_message_with_reason(self):
        """Test the message names the component and the reason."""
        error = ComponentCreationError(ServiceA, "Failed to create instance: boom")

        assert error.component is ServiceA
        assert str(error) == "Failed to create component: ServiceA. Reason: Failed to create instance: boom"

    def test_chaining(self):
        """Test that the original error can be chained."""
        original = ValueError("boom")

        with pytest.raises(ComponentCreationError) as exc_info:
            try:
                raise original
            except ValueError as e:
                raise ComponentCreationError(ServiceA, str(e)) from e

        assert exc_info.value.__cause__ is original
