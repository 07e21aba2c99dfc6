"""Disposable handles for applied logic entries and validators."""

from typing import Any, List, Optional


def dispose_resource(resource: Any) -> None:
    """Releases an effect, binding, timer handle, task or cleanup callable."""
    if hasattr(resource, "dispose"):
        resource.dispose()
    elif hasattr(resource, "cancel"):
        resource.cancel()
    elif callable(resource):
        resource()
    else:
        raise TypeError(f"Cannot dispose {resource!r}")


class Binding:
    """
    Groups the effects, timers and tasks created for one entry.

    Disposing is idempotent. The owning field node disposes its bindings
    when destroyed.
    """

    def __init__(self, name: Optional[str] = None, *resources: Any):
        self.name = name
        self._resources: List[Any] = list(resources)
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def add(self, resource: Any) -> Any:
        if self._disposed:
            dispose_resource(resource)
        else:
            self._resources.append(resource)
        return resource

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        while self._resources:
            dispose_resource(self._resources.pop())

    def __repr__(self) -> str:
        return f"Binding({self.name or ''}, disposed={self._disposed})"
