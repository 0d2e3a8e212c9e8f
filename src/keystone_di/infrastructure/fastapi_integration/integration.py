import inspect
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from keystone_di.domain import IResolver

T = TypeVar("T")


def _require(resolver: IResolver, component_type: Any, qualifier: Optional[Any]) -> Any:
    instance = resolver.get(component_type, qualifier)
    if instance is None:
        name = getattr(component_type, "__name__", None) or repr(component_type)
        if qualifier is not None:
            name = f"{name}[{qualifier!r}]"
        raise RuntimeError(f"No component bound for {name}. Did you forget to bind it before build()?")
    return instance


def create_fastapi_dependency(
    resolver: IResolver, component_type: Type[T], qualifier: Optional[Any] = None
) -> Callable[[], T]:
    """Create a FastAPI Depends() callable that resolves from a resolver.

    The resolved instance lifetime follows the binding's scope: singleton
    bindings return the same instance on every request, unscoped bindings a
    new one.

    Args:
        resolver: The resolver to resolve components from.
        component_type: The type (or ``Provider[...]`` / ``Annotated[...]``
            annotation) to resolve when the dependency is called.
        qualifier: Optional qualifier of the binding.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> registry = Registry()
        >>> registry.bind(UserRepository, SqlUserRepository)
        >>> resolver = registry.build()
        >>>
        >>> get_user_repo = create_fastapi_dependency(resolver, UserRepository)
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_user_repo)):
        ...     return await repo.get_all()
    """

    def dependency() -> T:
        """Resolve the component from the resolver."""
        return _require(resolver, component_type, qualifier)

    return dependency


def create_request_dependency(component_type: Type[T], qualifier: Optional[Any] = None) -> Callable[[Request], T]:
    """Create a FastAPI dependency resolving from the request's resolver.

    Requires the ResolverMiddleware to be installed.

    Args:
        component_type: The type to resolve.
        qualifier: Optional qualifier of the binding.

    Returns:
        A callable that resolves from the resolver attached to the request.

    Example:
        >>> app.add_middleware(ResolverMiddleware, resolver=resolver)
        >>>
        >>> get_clock = create_request_dependency(Clock)
        >>>
        >>> @app.get("/now")
        >>> async def now(clock: Clock = Depends(get_clock)):
        ...     return {"now": clock.now()}
    """

    def request_dependency(request: Request) -> T:
        """Resolve from the request's resolver."""
        if not hasattr(request.state, "resolver"):
            raise RuntimeError("Request does not have a resolver. Did you forget to add ResolverMiddleware?")
        return _require(request.state.resolver, component_type, qualifier)

    return request_dependency


class ResolverMiddleware(BaseHTTPMiddleware):
    """Middleware that exposes a resolver on every request.

    The resolver is accessible via `request.state.resolver`.

    Attributes:
        resolver: The resolver attached to each request.

    Example:
        >>> resolver = registry.build()
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(ResolverMiddleware, resolver=resolver)
        >>>
        >>> @app.get("/")
        >>> async def root(request: Request):
        ...     service = request.state.resolver.get(GreetingService)
        ...     return {"message": service.greet()}
    """

    def __init__(self, app: FastAPI, resolver: IResolver):
        """Initialize the middleware with a resolver.

        Args:
            app: The FastAPI/Starlette application.
            resolver: The resolver to attach to each request.
        """
        super().__init__(app)
        self.resolver = resolver

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Attach the resolver to the request and execute the endpoint.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        request.state.resolver = self.resolver
        return await call_next(request)


def inject_dependencies(resolver: IResolver, *component_types: Type[Any]) -> Callable:
    """Decorator that injects components into an async endpoint function.

    The components are matched positionally with the function's parameters
    and passed as keyword arguments unless the caller already supplied them.

    Args:
        resolver: The resolver to resolve components from.
        *component_types: Types to resolve and inject.

    Returns:
        A decorator function.

    Example:
        >>> @inject_dependencies(resolver, UserService, AuditLog)
        >>> async def list_users(user_service: UserService, audit: AuditLog):
        ...     audit.record("Listing users")
        ...     return await user_service.get_all()
    """

    def decorator(func: Callable) -> Callable:
        """Wrap the function with dependency injection logic."""
        signature = inspect.signature(func)
        param_names = list(signature.parameters.keys())

        dependencies = [create_fastapi_dependency(resolver, component_type) for component_type in component_types]

        async def wrapper(*args, **kwargs):
            """Resolve dependencies and call the original function."""
            for param_name, dependency in zip(param_names, dependencies):
                if param_name not in kwargs:
                    kwargs[param_name] = dependency()

            return await func(*args, **kwargs)

        return wrapper

    return decorator
