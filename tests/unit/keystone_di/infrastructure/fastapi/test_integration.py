"""Unit tests for FastAPI integration."""

import pytest

pytest.importorskip("fastapi")

from typing import Annotated
from unittest.mock import AsyncMock, Mock

from fastapi import FastAPI, Request
from starlette.responses import Response

from keystone_di.application import MarkerMetadataSource, Registry
from keystone_di.domain import Named, Provider, Singleton, inject
from keystone_di.infrastructure.fastapi_integration.integration import (
    ResolverMiddleware,
    create_fastapi_dependency,
    create_request_dependency,
    inject_dependencies,
)


class Database:
    def __init__(self) -> None:
        self.connected = True


class Repository:
    @inject
    def __init__(self, database: Database) -> None:
        self.database = database


class Region:
    """Qualifier tag outside the Qualifier hierarchy."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __eq__(self, other) -> bool:
        return isinstance(other, Region) and other.name == self.name

    def __hash__(self) -> int:
        return hash((Region, self.name))

    def __repr__(self) -> str:
        return f"Region({self.name!r})"


class RegionMetadata(MarkerMetadataSource):
    def is_qualifier(self, marker):
        return isinstance(marker, Region) or super().is_qualifier(marker)


class TestCreateFastAPIDependency:
    """Test cases for create_fastapi_dependency function."""

    def test_creates_dependency_function(self):
        """Test that create_fastapi_dependency returns a callable."""
        registry = Registry()
        registry.bind(Database, Database)

        dependency_func = create_fastapi_dependency(registry.build(), Database)

        assert callable(dependency_func)

    def test_dependency_function_resolves_nested_dependencies(self):
        """Test that nested dependencies are resolved."""
        registry = Registry()
        registry.bind(Database, Database)
        registry.bind(Repository, Repository)

        instance = create_fastapi_dependency(registry.build(), Repository)()

        assert isinstance(instance, Repository)
        assert instance.database.connected

    def test_dependency_function_returns_singleton_instance(self):
        """Test that singleton bindings return the same instance."""
        registry = Registry()
        registry.bind(Database, Database, Singleton())

        dependency_func = create_fastapi_dependency(registry.build(), Database)

        assert dependency_func() is dependency_func()

    def test_dependency_function_returns_new_unscoped_instances(self):
        """Test that unscoped bindings return a new instance per call."""
        registry = Registry()
        registry.bind(Database, Database)

        dependency_func = create_fastapi_dependency(registry.build(), Database)

        assert dependency_func() is not dependency_func()

    def test_dependency_function_with_qualifier(self):
        """Test resolving a qualified binding."""
        registry = Registry()
        primary = Database()
        registry.bind_instance(Database, primary, Named("primary"))

        dependency_func = create_fastapi_dependency(registry.build(), Database, Named("primary"))

        assert dependency_func() is primary

    def test_dependency_function_with_custom_qualifier(self):
        """Test that qualifiers recognised by the registry's metadata source resolve."""
        registry = Registry(metadata=RegionMetadata())
        primary = Database()
        registry.bind_instance(Database, primary, Region("eu"))

        dependency_func = create_fastapi_dependency(registry.build(), Database, Region("eu"))

        assert dependency_func() is primary

    def test_dependency_function_with_annotated_custom_qualifier(self):
        """Test that Annotated custom qualifiers select the qualified binding."""
        registry = Registry(metadata=RegionMetadata())
        primary, fallback = Database(), Database()
        registry.bind_instance(Database, primary, Region("eu"))
        registry.bind_instance(Database, fallback)

        dependency_func = create_fastapi_dependency(registry.build(), Annotated[Database, Region("eu")])

        assert dependency_func() is primary

    def test_unknown_qualifier_reports_missing_binding(self):
        """Test that a qualifier outside the taxonomy fails like an unbound type."""
        registry = Registry()
        registry.bind(Database, Database)

        dependency_func = create_fastapi_dependency(registry.build(), Database, "eu")

        with pytest.raises(RuntimeError, match=r"No component bound for Database\['eu'\]"):
            dependency_func()

    def test_dependency_function_with_provider(self):
        """Test that Provider annotations yield a deferred accessor."""
        registry = Registry()
        registry.bind(Database, Database)

        deferred = create_fastapi_dependency(registry.build(), Provider[Database])()

        assert isinstance(deferred.get(), Database)

    def test_dependency_function_raises_for_unbound_type(self):
        """Test that unbound types fail loudly at request time."""
        dependency_func = create_fastapi_dependency(Registry().build(), Database)

        with pytest.raises(RuntimeError, match="No component bound for Database"):
            dependency_func()


class TestCreateRequestDependency:
    """Test cases for create_request_dependency function."""

    def test_resolves_from_request_state(self):
        """Test that the dependency uses the resolver attached to the request."""
        registry = Registry()
        database = Database()
        registry.bind_instance(Database, database)

        request = Mock(spec=Request)
        request.state = Mock()
        request.state.resolver = registry.build()

        assert create_request_dependency(Database)(request) is database

    def test_resolves_custom_qualifier_from_request_state(self):
        """Test that the request resolver honours its metadata source's qualifiers."""
        registry = Registry(metadata=RegionMetadata())
        database = Database()
        registry.bind_instance(Database, database, Region("eu"))

        request = Mock(spec=Request)
        request.state = Mock()
        request.state.resolver = registry.build()

        assert create_request_dependency(Database, Region("eu"))(request) is database

    def test_raises_error_without_middleware(self):
        """Test that a missing resolver on the request is reported."""
        request = Mock(spec=Request)
        request.state = Mock(spec=[])

        with pytest.raises(RuntimeError, match="ResolverMiddleware"):
            create_request_dependency(Database)(request)

    def test_raises_error_for_unbound_type(self):
        """Test that unbound types fail loudly."""
        request = Mock(spec=Request)
        request.state = Mock()
        request.state.resolver = Registry().build()

        with pytest.raises(RuntimeError, match="No component bound"):
            create_request_dependency(Database)(request)


class TestResolverMiddleware:
    """Test cases for ResolverMiddleware."""

    def test_middleware_initialization(self):
        """Test that middleware initializes correctly."""
        app = FastAPI()
        resolver = Registry().build()

        middleware = ResolverMiddleware(app, resolver)

        assert middleware.resolver is resolver
        assert middleware.app is app

    @pytest.mark.asyncio
    async def test_middleware_attaches_resolver(self):
        """Test that the resolver is visible on the request inside the endpoint."""
        resolver = Registry().build()
        middleware = ResolverMiddleware(FastAPI(), resolver)
        seen = []

        async def call_next(request):
            seen.append(request.state.resolver)
            return Response(status_code=200)

        request = Mock(spec=Request)
        request.state = Mock()

        await middleware.dispatch(request, call_next)

        assert seen == [resolver]

    @pytest.mark.asyncio
    async def test_middleware_passes_response_through(self):
        """Test that the endpoint response is returned unchanged."""
        middleware = ResolverMiddleware(FastAPI(), Registry().build())
        response = Response(content="ok", status_code=201)
        call_next = AsyncMock(return_value=response)

        request = Mock(spec=Request)
        request.state = Mock()

        assert await middleware.dispatch(request, call_next) is response
        call_next.assert_awaited_once_with(request)

    @pytest.mark.asyncio
    async def test_middleware_propagates_exceptions(self):
        """Test that endpoint errors are not swallowed."""
        middleware = ResolverMiddleware(FastAPI(), Registry().build())
        call_next = AsyncMock(side_effect=RuntimeError("Request processing failed"))

        request = Mock(spec=Request)
        request.state = Mock()

        with pytest.raises(RuntimeError, match="Request processing failed"):
            await middleware.dispatch(request, call_next)


class TestInjectDependencies:
    """Test cases for inject_dependencies decorator."""

    @pytest.mark.asyncio
    async def test_injects_components_by_position(self):
        """Test that components are passed to matching parameters."""
        registry = Registry()
        registry.bind(Database, Database)
        registry.bind(Repository, Repository)
        resolver = registry.build()

        @inject_dependencies(resolver, Repository, Database)
        async def endpoint(repository: Repository, database: Database):
            return repository, database

        repository, database = await endpoint()

        assert isinstance(repository, Repository)
        assert isinstance(database, Database)

    @pytest.mark.asyncio
    async def test_explicit_arguments_win(self):
        """Test that caller-supplied keyword arguments are not replaced."""
        registry = Registry()
        registry.bind(Database, Database)
        explicit = Database()

        @inject_dependencies(registry.build(), Database)
        async def endpoint(database: Database):
            return database

        assert await endpoint(database=explicit) is explicit
