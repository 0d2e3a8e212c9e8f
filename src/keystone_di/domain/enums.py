from enum import Enum


class ContainerKind(str, Enum):
    """Defines how an injection point wants its dependency delivered.

    Attributes:
        DIRECT: The resolved value itself.
        DEFERRED: A zero-argument ``Provider`` that resolves on call.
        UNSUPPORTED: Any other generic container (``List[T]``, ``Optional[T]``, ...).
    """

    DIRECT = "direct"
    DEFERRED = "deferred"
    UNSUPPORTED = "unsupported"

    def __str__(self) -> str:
        return self.value
