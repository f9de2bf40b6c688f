"""Tests for the resource registry and URI templates."""

from __future__ import annotations

import pytest

from pokedex_mcp.errors import UnknownResource
from pokedex_mcp.resources import (
    ResourceContent,
    ResourceDefinition,
    ResourceRegistry,
    compile_template,
    expand_template,
)


async def read_everything() -> str:
    return "everything"


async def read_item(itemId: str) -> str:  # noqa: N803
    return f"item {itemId}"


@pytest.fixture
def registry() -> ResourceRegistry:
    registry = ResourceRegistry()
    registry.register(
        ResourceDefinition(
            uri="things://all",
            name="all-things",
            handler=read_everything,
            mime_type="application/json",
        )
    )
    registry.register(
        ResourceDefinition(
            uri="things://{itemId}/detail",
            name="thing-detail",
            handler=read_item,
            mime_type="application/json",
        )
    )
    return registry


class TestCompileTemplate:
    def test_matches_single_segment(self) -> None:
        pattern = compile_template("things://{itemId}/detail")

        m = pattern.fullmatch("things://42/detail")

        assert m is not None
        assert m.groupdict() == {"itemId": "42"}

    def test_placeholder_does_not_span_segments(self) -> None:
        pattern = compile_template("things://{itemId}/detail")
        assert pattern.fullmatch("things://4/2/detail") is None

    def test_literal_parts_are_escaped(self) -> None:
        pattern = compile_template("a.b://{x}")
        assert pattern.fullmatch("aXb://1") is None
        assert pattern.fullmatch("a.b://1") is not None


class TestResourceDefinition:
    def test_static_definition(self) -> None:
        definition = ResourceDefinition(uri="things://all", name="all", handler=read_everything)

        assert definition.is_template is False
        assert definition.parameters == []
        assert definition.match("things://all") == {}
        assert definition.match("things://other") is None

    def test_template_definition(self) -> None:
        definition = ResourceDefinition(uri="things://{itemId}/detail", name="d", handler=read_item)

        assert definition.is_template is True
        assert definition.parameters == ["itemId"]
        assert definition.match("things://abc/detail") == {"itemId": "abc"}
        assert definition.match("things://abc") is None

    def test_to_mcp_resource(self) -> None:
        definition = ResourceDefinition(
            uri="things://all",
            name="all",
            handler=read_everything,
            title="All",
            description="Everything",
            mime_type="application/json",
        )

        resource = definition.to_mcp_resource()

        assert str(resource.uri).rstrip("/") == "things://all"
        assert resource.name == "all"
        assert resource.mimeType == "application/json"

    def test_to_mcp_template(self) -> None:
        definition = ResourceDefinition(uri="things://{itemId}/detail", name="d", handler=read_item)

        template = definition.to_mcp_template()

        assert template.uriTemplate == "things://{itemId}/detail"
        assert template.name == "d"


class TestResourceRegistry:
    def test_lists_static_and_templates_separately(self, registry) -> None:
        assert [r.uri for r in registry.list_resources()] == ["things://all"]
        assert [t.uri for t in registry.list_templates()] == ["things://{itemId}/detail"]

    def test_duplicate_static_rejected(self, registry) -> None:
        with pytest.raises(ValueError, match="already registered"):
            registry.register(ResourceDefinition(uri="things://all", name="x", handler=read_everything))

    def test_duplicate_template_rejected(self, registry) -> None:
        with pytest.raises(ValueError, match="already registered"):
            registry.register(
                ResourceDefinition(uri="things://{itemId}/detail", name="x", handler=read_item)
            )

    @pytest.mark.asyncio
    async def test_resolves_static(self, registry) -> None:
        content = await registry.resolve("things://all")

        assert content == ResourceContent(
            uri="things://all", text="everything", mime_type="application/json"
        )

    @pytest.mark.asyncio
    async def test_resolves_template_with_params(self, registry) -> None:
        content = await registry.resolve("things://7/detail")

        assert content.uri == "things://7/detail"
        assert content.text == "item 7"

    @pytest.mark.asyncio
    async def test_static_wins_over_template(self) -> None:
        async def read_special() -> str:
            return "special"

        registry = ResourceRegistry()
        registry.register(ResourceDefinition(uri="things://{itemId}/detail", name="d", handler=read_item))
        registry.register(ResourceDefinition(uri="things://all/detail", name="s", handler=read_special))

        content = await registry.resolve("things://all/detail")

        assert content.text == "special"

    @pytest.mark.asyncio
    async def test_unknown_uri_raises(self, registry) -> None:
        with pytest.raises(UnknownResource, match="things://nothing"):
            await registry.resolve("things://nothing")

    @pytest.mark.asyncio
    async def test_handler_errors_propagate(self) -> None:
        async def broken() -> str:
            raise RuntimeError("boom")

        registry = ResourceRegistry()
        registry.register(ResourceDefinition(uri="things://broken", name="b", handler=broken))

        with pytest.raises(RuntimeError, match="boom"):
            await registry.resolve("things://broken")

    def test_register_static_and_template_helpers(self) -> None:
        registry = ResourceRegistry()

        static = registry.register_static("things://all", "all", read_everything, mime_type="text/plain")
        template = registry.register_template("things://{itemId}/detail", "detail", read_item)

        assert static.mime_type == "text/plain"
        assert registry.list_resources() == [static]
        assert registry.list_templates() == [template]

    def test_register_helpers_check_uri_kind(self) -> None:
        registry = ResourceRegistry()

        with pytest.raises(ValueError, match="contains a placeholder"):
            registry.register_static("things://{itemId}", "x", read_item)
        with pytest.raises(ValueError, match="has no placeholder"):
            registry.register_template("things://all", "x", read_everything)


class TestExpandTemplate:
    def test_fills_placeholders(self) -> None:
        assert expand_template("things://{itemId}/detail", {"itemId": "7"}) == "things://7/detail"

    def test_static_uri_unchanged(self) -> None:
        assert expand_template("things://all", {"unused": "x"}) == "things://all"

    def test_missing_value_raises(self) -> None:
        with pytest.raises(ValueError, match="itemId"):
            expand_template("things://{itemId}/detail", {})
