"""
Cache of per-configuration policy input templates.

Templates are keyed by the identity of the authorizer configuration they were
built for, so rules sharing a configuration share one template.
"""

import logging
import threading
from typing import Any, Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Renders the policy input document for one request.
PolicyInputTemplate = Callable[[Any], dict]


class TemplateCache(Generic[T]):
    """
    Thread-safe, build-once cache keyed by configuration identity.

    Entries are never replaced or evicted, so a template obtained by one request
    stays valid while other requests populate the cache.
    """

    def __init__(self) -> None:
        self._templates: dict[str, T] = {}
        self._lock = threading.Lock()

    def get(self, identity: str) -> Optional[T]:
        return self._templates.get(identity)

    def get_or_build(self, identity: str, factory: Callable[[], T]) -> T:
        """
        Return the template stored under identity, building it on first use.

        Args:
            identity: Configuration fingerprint
            factory: Builds the template; called at most once per identity

        Returns:
            Cached template
        """
        template = self._templates.get(identity)
        if template is not None:
            return template

        with self._lock:
            template = self._templates.get(identity)
            if template is None:
                template = factory()
                self._templates[identity] = template
                logger.debug(f"Built policy input template {identity[:12]}")
            return template

    def __contains__(self, identity: object) -> bool:
        return identity in self._templates

    def __len__(self) -> int:
        return len(self._templates)
