"""Static and templated resource addresses.

A static resource has a fixed URI. A templated resource has one or more
``{placeholder}`` segments; resolving a concrete URI extracts the
placeholder values and passes them to the handler as keyword arguments.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import mcp.types as types

from .errors import UnknownResource

logger = logging.getLogger(__name__)

ResourceHandler = Callable[..., Awaitable[str]]

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class ResourceContent:
    """Content produced by reading a resource."""

    uri: str
    text: str
    mime_type: str | None = None


@dataclass
class ResourceDefinition:
    """A static URI or a URI template bound to a handler."""

    uri: str
    name: str
    handler: ResourceHandler
    title: str | None = None
    description: str | None = None
    mime_type: str | None = None
    _pattern: re.Pattern[str] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.is_template:
            self._pattern = compile_template(self.uri)

    @property
    def is_template(self) -> bool:
        return _PLACEHOLDER.search(self.uri) is not None

    @property
    def parameters(self) -> list[str]:
        return _PLACEHOLDER.findall(self.uri)

    def match(self, uri: str) -> dict[str, str] | None:
        """Return placeholder values if uri matches this definition."""
        if self._pattern is None:
            return {} if uri == self.uri else None
        m = self._pattern.fullmatch(uri)
        return m.groupdict() if m else None

    def to_mcp_resource(self) -> types.Resource:
        return types.Resource(
            uri=self.uri,  # type: ignore[arg-type]
            name=self.name,
            title=self.title,
            description=self.description,
            mimeType=self.mime_type,
        )

    def to_mcp_template(self) -> types.ResourceTemplate:
        return types.ResourceTemplate(
            uriTemplate=self.uri,
            name=self.name,
            title=self.title,
            description=self.description,
            mimeType=self.mime_type,
        )


def compile_template(template: str) -> re.Pattern[str]:
    """Compile a URI template into a regex with one named group per placeholder.

    Placeholders match a single path segment (no "/").
    """
    parts = []
    last = 0
    for m in _PLACEHOLDER.finditer(template):
        parts.append(re.escape(template[last : m.start()]))
        parts.append(f"(?P<{m.group(1)}>[^/]+)")
        last = m.end()
    parts.append(re.escape(template[last:]))
    return re.compile("".join(parts))


def expand_template(template: str, values: dict[str, str]) -> str:
    """Fill every ``{placeholder}`` of a URI template.

    Raises:
        ValueError: If a placeholder has no value
    """
    missing = [name for name in _PLACEHOLDER.findall(template) if name not in values]
    if missing:
        raise ValueError(f"Missing values for: {', '.join(missing)}")
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], template)


class ResourceRegistry:
    """Registry of static resources and resource templates.

    Resolution tries exact static matches first, then templates in
    registration order.
    """

    def __init__(self) -> None:
        self._static: dict[str, ResourceDefinition] = {}
        self._templates: list[ResourceDefinition] = []

    def register(self, definition: ResourceDefinition) -> None:
        """Register a static resource or a template.

        Raises:
            ValueError: If the URI or template is already registered
        """
        if definition.is_template:
            if any(t.uri == definition.uri for t in self._templates):
                raise ValueError(f"Resource template '{definition.uri}' already registered")
            self._templates.append(definition)
        else:
            if definition.uri in self._static:
                raise ValueError(f"Resource '{definition.uri}' already registered")
            self._static[definition.uri] = definition
        logger.debug(f"Registered resource: {definition.uri}")

    def register_static(self, uri: str, name: str, handler: ResourceHandler, **metadata: Any) -> ResourceDefinition:
        """Register a handler for a fixed URI."""
        definition = ResourceDefinition(uri=uri, name=name, handler=handler, **metadata)
        if definition.is_template:
            raise ValueError(f"Static resource URI '{uri}' contains a placeholder")
        self.register(definition)
        return definition

    def register_template(
        self, uri_template: str, name: str, handler: ResourceHandler, **metadata: Any
    ) -> ResourceDefinition:
        """Register a handler for a URI template such as ``scheme://{id}/entry``."""
        definition = ResourceDefinition(uri=uri_template, name=name, handler=handler, **metadata)
        if not definition.is_template:
            raise ValueError(f"Resource template '{uri_template}' has no placeholder")
        self.register(definition)
        return definition

    def list_resources(self) -> list[ResourceDefinition]:
        return list(self._static.values())

    def list_templates(self) -> list[ResourceDefinition]:
        return list(self._templates)

    async def resolve(self, uri: str) -> ResourceContent:
        """Read the resource at a concrete URI.

        Raises:
            UnknownResource: If nothing matches the URI
        """
        definition, params = self._find(uri)
        logger.debug(f"Reading resource {uri} via {definition.uri}")
        text = await definition.handler(**params)
        return ResourceContent(uri=uri, text=text, mime_type=definition.mime_type)

    def _find(self, uri: str) -> tuple[ResourceDefinition, dict[str, Any]]:
        # URL normalization may append a "/" to an empty path
        static = self._static.get(uri) or self._static.get(uri.rstrip("/"))
        if static is not None:
            return static, {}
        for template in self._templates:
            params = template.match(uri)
            if params is not None:
                return template, params
        raise UnknownResource(uri)
